# ehr_core/notifications/filters.py
import django_filters

from ehr_core.notifications.models import Notification, NotificationPriority, NotificationType
from ehr_core.notifications.selectors import unexpired


class NotificationFilter(django_filters.FilterSet):
    type = django_filters.ChoiceFilter(choices=NotificationType.choices)
    priority = django_filters.ChoiceFilter(choices=NotificationPriority.choices)
    is_read = django_filters.BooleanFilter()
    include_expired = django_filters.BooleanFilter(method="filter_include_expired")

    class Meta:
        model = Notification
        fields = ["type", "priority", "is_read"]

    def filter_include_expired(self, queryset, name, value):
        if value:
            return queryset
        return unexpired(queryset)

    @property
    def qs(self):
        qs = super().qs
        # expired rows are hidden unless include_expired is given
        if getattr(self.form, "cleaned_data", {}).get("include_expired") is None:
            qs = self.filter_include_expired(qs, "include_expired", False)
        return qs
