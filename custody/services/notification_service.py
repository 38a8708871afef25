"""
Notification service.

Posts transaction summaries to an outbound webhook (mail relay, chat
bridge). Fire-and-forget: failures are logged and never propagate.
"""

from typing import Any

import aiohttp
from loguru import logger

from custody.services.blockchain.types import SubmittedTransaction
from custody.utils.security import mask_tx_hash

NOTIFICATION_TIMEOUT = 10.0


class NotificationService:
    """Transaction notifications over HTTP webhook."""

    def __init__(
        self,
        webhook_url: str | None,
        timeout: float = NOTIFICATION_TIMEOUT,
    ) -> None:
        """
        Initialize notification service.

        Args:
            webhook_url: Target URL; when empty notifications are only logged
            timeout: Total request timeout in seconds
        """
        self.webhook_url = webhook_url
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    @staticmethod
    def build_summary(tx: SubmittedTransaction, explorer_url: str | None = None) -> dict[str, Any]:
        """Build the transaction summary payload."""
        summary = tx.to_dict()
        if explorer_url:
            summary["explorerUrl"] = f"{explorer_url.rstrip('/')}/tx/{tx.hash}"
        return summary

    async def send_transaction_notification(
        self, user: dict[str, Any], summary: dict[str, Any]
    ) -> bool:
        """
        Notify a user about a transaction.

        Args:
            user: Recipient descriptor (id, email)
            summary: Transaction summary from build_summary()

        Returns:
            True if delivered (or logged when no webhook is configured)
        """
        tx_hash = summary.get("hash")
        if not self.webhook_url:
            logger.info(
                f"Notification for user {user.get('id')}: "
                f"{summary.get('status')} {mask_tx_hash(tx_hash)}"
            )
            return True

        payload = {"user": user, "transaction": summary}
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.webhook_url, json=payload) as response:
                    if response.status >= 400:
                        body = await response.text()
                        logger.warning(
                            f"Notification webhook returned {response.status} "
                            f"for {mask_tx_hash(tx_hash)}: {body[:200]}"
                        )
                        return False
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.warning(f"Notification webhook failed for {mask_tx_hash(tx_hash)}: {e}")
            return False

        logger.debug(f"Notification delivered for {mask_tx_hash(tx_hash)}")
        return True
