"""
Webhook package: Helius-style envelope models, the payload builder that produces
them from ledger transactions, and the dispatcher that delivers them.
"""

from backend_booty.webhook.dispatcher import DeliveryResult, WebhookDispatcher
from backend_booty.webhook.models import WebhookEnvelope
from backend_booty.webhook.payload import EnvelopeBuild, build_envelope

__all__ = [
    "DeliveryResult",
    "EnvelopeBuild",
    "WebhookDispatcher",
    "WebhookEnvelope",
    "build_envelope",
]
