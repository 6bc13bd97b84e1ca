# ehr_core/iam/roles.py
from __future__ import annotations

ROLE_SUPER_ADMIN = "SUPER_ADMIN"
ROLE_ADMIN = "ADMIN"
ROLE_DOCTOR = "DOCTOR"
ROLE_NURSE = "NURSE"
ROLE_PROVIDER = "PROVIDER"
ROLE_PATIENT = "PATIENT"
ROLE_STAFF = "STAFF"

ALL_ROLES = frozenset(
    {
        ROLE_SUPER_ADMIN,
        ROLE_ADMIN,
        ROLE_DOCTOR,
        ROLE_NURSE,
        ROLE_PROVIDER,
        ROLE_PATIENT,
        ROLE_STAFF,
    }
)

CLINICAL_ROLES = frozenset({ROLE_DOCTOR, ROLE_NURSE})
ADMIN_ROLES = frozenset({ROLE_SUPER_ADMIN, ROLE_ADMIN})
