import requests
import logging
import os
import time
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_ORDER_WEBHOOK = os.getenv("ORDER_WEBHOOK_URL")


class WorkflowClient:
    """Posts accepted orders to the fulfillment webhook (packing list, CRM, whatever listens)."""

    def __init__(self, webhook_url: Optional[str] = None, max_retries: int = 3, timeout: float = 5):
        self.webhook = webhook_url or DEFAULT_ORDER_WEBHOOK
        self.max_retries = max_retries
        self.timeout = timeout
        logger.debug("WorkflowClient initialized with webhook=%s max_retries=%s", self.webhook, self.max_retries)

    @property
    def enabled(self) -> bool:
        return bool(self.webhook)

    def trigger(self, payload: Dict[str, Any]) -> bool:
        if not self.enabled:
            logger.debug("No order webhook configured; skipping notification")
            return False

        headers = {"Content-Type": "application/json"}
        # lets the receiver drop duplicate deliveries
        if "orderId" in payload:
            headers["Idempotency-Key"] = f"order-{payload['orderId']}"

        for attempt in range(1, self.max_retries + 1):
            try:
                logger.debug("Triggering order webhook attempt=%s url=%s", attempt, self.webhook)
                resp = requests.post(self.webhook, json=payload, timeout=self.timeout, headers=headers)
                resp.raise_for_status()
                logger.info("Triggered order webhook url=%s status=%s", self.webhook, resp.status_code)
                return True
            except requests.RequestException as e:
                logger.warning("Attempt %s url=%s: failed to trigger order webhook: %s", attempt, self.webhook, e)
            if attempt < self.max_retries:
                time.sleep(0.5 * attempt)

        logger.error("All %s attempts to trigger order webhook failed url=%s", self.max_retries, self.webhook)
        return False
