import django_filters

from modules.notifications.models import Notification, NotificationType


class NotificationFilter(django_filters.FilterSet):
    is_read = django_filters.BooleanFilter(field_name="is_read")
    notification_type = django_filters.ChoiceFilter(
        field_name="notification_type", choices=NotificationType.choices
    )

    class Meta:
        model = Notification
        fields = ["is_read", "notification_type"]
