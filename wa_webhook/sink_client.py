"""HTTP client for the downstream webhook sink."""
import json
from typing import Optional
from urllib.parse import quote

import requests

from wa_webhook import settings
from wa_webhook.errors import DeliveryError
from wa_webhook.logging_conf import logger
from wa_webhook.queue.models import WebhookPayload


def session_header(session_id: str) -> str:
    """Header-safe session id; values outside latin-1 are percent-encoded."""
    try:
        session_id.encode("latin-1")
    except UnicodeEncodeError:
        return quote(session_id, safe="")
    return session_id


class SinkClient:
    """POSTs webhook payloads to the configured sink URL."""

    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None,
                 source: Optional[str] = None, session: Optional[requests.Session] = None):
        if url is None:
            if not settings.WEBHOOK_URL:
                logger.warning(f"WEBHOOK_URL not set, using default: {settings.DEFAULT_WEBHOOK_URL}")
            url = settings.get_webhook_url()
        self.url = url
        self.timeout = settings.WEBHOOK_TIMEOUT if timeout is None else timeout
        self.source = source or settings.WEBHOOK_SOURCE
        self.session = session or requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "X-Webhook-Source": self.source,
        })

    def deliver(self, payload: WebhookPayload) -> int:
        """
        Send one payload to the sink.

        Args:
            payload: The webhook payload to POST

        Returns:
            The 2xx status code the sink answered with

        Raises:
            DeliveryError on non-2xx status, transport error or timeout
        """
        if not self.url:
            raise DeliveryError("webhook URL not configured")

        body = json.dumps(payload.to_dict())
        try:
            response = self.session.post(
                self.url,
                data=body,
                headers={"X-Session-ID": session_header(payload.session_id)},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise DeliveryError(f"request timed out after {self.timeout}s: {e}") from e
        except requests.exceptions.RequestException as e:
            raise DeliveryError(f"request failed: {e}") from e
        except (UnicodeError, ValueError) as e:
            raise DeliveryError(f"request could not be encoded: {e}") from e

        try:
            if not 200 <= response.status_code < 300:
                raise DeliveryError(
                    f"webhook returned status {response.status_code}",
                    status_code=response.status_code,
                )
            return response.status_code
        finally:
            response.close()

    def close(self) -> None:
        self.session.close()
