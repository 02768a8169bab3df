"""Exceptions raised by the webhook relay."""
from typing import Optional


class WebhookError(Exception):
    """Base class for webhook relay failures."""


class QueueStoreError(WebhookError):
    """The queue store could not complete a push, pop or length query."""


class DeliveryError(WebhookError):
    """A payload was not accepted by the sink.

    ``status_code`` is set when the sink answered with a non-2xx status and is
    ``None`` for transport errors and timeouts.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
