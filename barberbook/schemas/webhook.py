"""Webhook acknowledgement body."""

from ._strict_base import StrictModel


class WebhookAck(StrictModel):
    ok: bool = True
    outcome: str
