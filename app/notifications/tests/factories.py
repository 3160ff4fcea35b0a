"""
Factory Boy factories for notification models.

Usage:
    from notifications.tests.factories import NotificationFactory

    notification = NotificationFactory(recipient=user)
    reaction = NotificationFactory(notification_type=NotificationKind.REACTION)
"""

import factory

from authentication.tests.factories import UserFactory
from notifications.models import Notification, NotificationKind, NotificationPriority


class NotificationFactory(factory.django.DjangoModelFactory):
    """
    Factory for Notification model.

    Defaults to an unread new-message notification.
    """

    class Meta:
        model = Notification

    recipient = factory.SubFactory(UserFactory)
    actor = factory.SubFactory(UserFactory)
    notification_type = NotificationKind.MESSAGE
    priority = NotificationPriority.HIGH
    title = factory.LazyAttribute(lambda o: f"New message from {o.actor.get_full_name()}")
    body = factory.Faker("sentence")
    data = factory.LazyFunction(lambda: {"chat_id": 1, "message_id": 1})
    is_read = False
