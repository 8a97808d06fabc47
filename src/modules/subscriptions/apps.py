from django.apps import AppConfig


class SubscriptionsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.subscriptions"
    label = "subscriptions"

    def ready(self) -> None:
        from modules.subscriptions.events import (
            SubscriptionActivated,
            SubscriptionCancelled,
            SubscriptionCreated,
        )
        from modules.subscriptions.handlers import (
            subscription_activated_handler,
            subscription_cancelled_handler,
            subscription_created_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(SubscriptionCreated, subscription_created_handler)
        event_bus.subscribe(SubscriptionActivated, subscription_activated_handler)
        event_bus.subscribe(SubscriptionCancelled, subscription_cancelled_handler)
