# ehr_core/access/scoping.py
from __future__ import annotations

from uuid import UUID

from rest_framework.exceptions import ValidationError

from ehr_core.common.api.exceptions import ForbiddenError
from ehr_core.iam.identity import Actor


def facility_for_create(actor: Actor, requested: UUID | None) -> UUID:
    """
    Facility a new facility-scoped row is created in.

    SUPER_ADMIN must name one. Everyone else creates in their own facility;
    naming a different one is forbidden.
    """
    if actor.is_super_admin:
        if not requested:
            raise ValidationError({"facility_id": ["This field is required."]})
        return requested

    if actor.facility_id is None:
        raise ForbiddenError("Your account is not assigned to a facility.")
    if requested and str(requested) != str(actor.facility_id):
        raise ForbiddenError("You can only create records in your own facility.")
    return actor.facility_id
