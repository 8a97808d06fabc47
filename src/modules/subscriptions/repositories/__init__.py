"""Subscription repositories package."""

from modules.subscriptions.repositories.django_repository import SubscriptionDjangoRepository
from modules.subscriptions.repositories.interfaces import ISubscriptionRepository

__all__ = ["ISubscriptionRepository", "SubscriptionDjangoRepository"]
