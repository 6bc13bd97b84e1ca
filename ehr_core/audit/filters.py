# ehr_core/audit/filters.py
import django_filters

from ehr_core.audit.models import AuditEvent


class AuditEventFilter(django_filters.FilterSet):
    actor_id = django_filters.NumberFilter(field_name="actor_id")
    action = django_filters.CharFilter(field_name="action")
    resource_type = django_filters.CharFilter(field_name="resource_type")
    resource_id = django_filters.CharFilter(field_name="resource_id")
    date_from = django_filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    date_to = django_filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = AuditEvent
        fields = ["actor_id", "action", "resource_type", "resource_id", "date_from", "date_to"]
