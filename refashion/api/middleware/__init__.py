"""
API middleware package.
"""
from refashion.api.middleware.webhook_auth import FalWebhookAuthDependency, fal_webhook_auth

__all__ = ["FalWebhookAuthDependency", "fal_webhook_auth"]
