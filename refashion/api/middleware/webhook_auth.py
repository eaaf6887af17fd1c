"""
Webhook authentication dependency for FastAPI.
"""
from typing import Any, Dict

from fastapi import Depends, Request

from refashion.api.deps import get_fal_verifier
from refashion.core.exceptions import KeySetFetchError, WebhookVerificationError
from refashion.utils.logging import get_logger, log_security_event
from refashion.utils.webhook_security import FalWebhookVerifier, extract_webhook_headers

logger = get_logger(__name__)


class FalWebhookAuthDependency:
    """
    FastAPI dependency that authenticates Fal.ai webhooks.

    The raw body is read and verified before anything parses it; handlers
    receive the verified bytes.
    """

    def __init__(self, log_verification_details: bool = True):
        """
        Initialize webhook auth dependency.

        Args:
            log_verification_details: Whether to log successful verifications
        """
        self.log_verification_details = log_verification_details

    async def __call__(
        self,
        request: Request,
        verifier: FalWebhookVerifier = Depends(get_fal_verifier),
    ) -> Dict[str, Any]:
        """
        Verify the signature of an inbound webhook.

        Args:
            request: The FastAPI request object
            verifier: Signature verifier

        Returns:
            Dictionary with the verified headers and raw body

        Raises:
            WebhookVerificationError: If authentication fails (401)
            KeySetFetchError: If the key set is unavailable (503)
        """
        client_ip = request.client.host if request.client else None
        raw_body = await request.body()

        headers = extract_webhook_headers(request.headers)
        if headers is None:
            log_security_event("webhook_headers_missing", ip_address=client_ip, path=request.url.path)
            raise WebhookVerificationError("Missing webhook signature headers")

        try:
            is_valid = await verifier.verify_headers(headers, raw_body)
        except KeySetFetchError as e:
            logger.error("Webhook key set unavailable", error=e.message, request_id=headers.request_id)
            raise

        if not is_valid:
            log_security_event(
                "webhook_rejected",
                ip_address=client_ip,
                request_id=headers.request_id,
            )
            raise WebhookVerificationError(request_id=headers.request_id)

        if self.log_verification_details:
            logger.info("Webhook signature verified", request_id=headers.request_id, user_id=headers.user_id)

        return {"headers": headers, "raw_body": raw_body}


# Global webhook auth dependency instance
fal_webhook_auth = FalWebhookAuthDependency()
