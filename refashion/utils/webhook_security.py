"""
Webhook signature verification for Fal.ai completion callbacks.

Fal.ai signs every webhook with Ed25519. The signed message is the
newline-joined request id, user id, timestamp and the hex SHA-256 digest of
the raw body; public keys are published as a JWKS document.
"""

import base64
import binascii
import hashlib
import time
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional

import httpx
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from refashion.core.config import settings
from refashion.core.exceptions import KeySetFetchError
from refashion.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)

ED25519_PUBLIC_KEY_LENGTH = 32
USER_AGENT = "RefashionAI-Webhook-Client/1.0"

REQUEST_ID_HEADER = "x-fal-webhook-request-id"
USER_ID_HEADER = "x-fal-webhook-user-id"
TIMESTAMP_HEADER = "x-fal-webhook-timestamp"
SIGNATURE_HEADER = "x-fal-webhook-signature"


@dataclass(frozen=True)
class FalWebhookHeaders:
    """The four header values a Fal.ai webhook must carry."""

    request_id: str
    user_id: str
    timestamp: str
    signature: str


def decode_base64url(data: str) -> bytes:
    """Decode unpadded base64url."""
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode((data + padding).encode("ascii"))


def build_canonical_message(
    request_id: str,
    user_id: str,
    timestamp: str,
    raw_body: bytes,
) -> bytes:
    """Build the exact byte string Fal.ai signs for a webhook."""
    body_hash = hashlib.sha256(raw_body).hexdigest()
    return "\n".join([request_id, user_id, timestamp, body_hash]).encode("utf-8")


def extract_webhook_headers(headers: Mapping[str, str]) -> Optional[FalWebhookHeaders]:
    """
    Pull the signature headers out of a request.

    Args:
        headers: Request headers (any mapping; lookup is case-insensitive)

    Returns:
        FalWebhookHeaders, or None when any header is missing or empty
    """
    lowered = {str(key).lower(): value for key, value in headers.items()}
    values = {
        "request_id": lowered.get(REQUEST_ID_HEADER),
        "user_id": lowered.get(USER_ID_HEADER),
        "timestamp": lowered.get(TIMESTAMP_HEADER),
        "signature": lowered.get(SIGNATURE_HEADER),
    }

    missing = [name for name, value in values.items() if not value]
    if missing:
        logger.warning("Missing webhook headers", missing=missing)
        return None

    return FalWebhookHeaders(**values)


class JWKSCache:
    """
    Process-wide cache of the provider's Ed25519 public keys.

    The key list is replaced wholesale on refresh. Concurrent refreshes may
    both hit the network; the last one to finish wins.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        ttl_seconds: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.url = url or settings.FAL_JWKS_URL
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.JWKS_CACHE_TTL_SECONDS
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.JWKS_FETCH_TIMEOUT_SECONDS
        )
        self._client_factory = client_factory or (lambda: httpx.AsyncClient(timeout=self.timeout_seconds))
        self._clock = clock
        self._keys: Optional[List[bytes]] = None
        self._fetched_at = 0.0

    @property
    def is_fresh(self) -> bool:
        return self._keys is not None and (self._clock() - self._fetched_at) < self.ttl_seconds

    def invalidate(self) -> None:
        """Drop the cached key set so the next get() refetches it."""
        self._keys = None
        self._fetched_at = 0.0

    async def get(self) -> List[bytes]:
        """
        Return the raw 32-byte public keys, refreshing when stale.

        Raises:
            KeySetFetchError: If the key set cannot be fetched
        """
        if self.is_fresh:
            return self._keys

        keys = await self._fetch()
        self._keys = keys
        self._fetched_at = self._clock()
        return keys

    async def _fetch(self) -> List[bytes]:
        logger.info("Fetching webhook key set", url=self.url)
        try:
            async with self._client_factory() as client:
                response = await client.get(
                    self.url,
                    headers={"User-Agent": USER_AGENT},
                    timeout=self.timeout_seconds,
                )
                response.raise_for_status()
                document = response.json()
        except httpx.HTTPStatusError as exc:
            raise KeySetFetchError(
                f"JWKS fetch failed: {exc.response.status_code}",
                url=self.url,
                status_code=exc.response.status_code,
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise KeySetFetchError(f"JWKS fetch failed: {exc}", url=self.url) from exc

        raw_keys = document.get("keys") if isinstance(document, dict) else None
        keys = []
        for entry in raw_keys or []:
            encoded = entry.get("x") if isinstance(entry, dict) else None
            if not isinstance(encoded, str):
                continue
            try:
                key_bytes = decode_base64url(encoded)
            except (binascii.Error, ValueError):
                logger.warning("Skipping undecodable key in key set")
                continue
            if len(key_bytes) != ED25519_PUBLIC_KEY_LENGTH:
                logger.warning("Skipping key with invalid length", length=len(key_bytes))
                continue
            keys.append(key_bytes)

        logger.info("Webhook key set fetched", key_count=len(keys))
        return keys


class FalWebhookVerifier:
    """Verifies Fal.ai webhook signatures against the cached key set."""

    def __init__(
        self,
        key_cache: Optional[JWKSCache] = None,
        tolerance_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.key_cache = key_cache or JWKSCache()
        self.tolerance_seconds = (
            tolerance_seconds if tolerance_seconds is not None
            else settings.WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS
        )
        self._clock = clock

    async def verify(
        self,
        request_id: str,
        user_id: str,
        timestamp: str,
        signature_hex: str,
        raw_body: bytes,
    ) -> bool:
        """
        Verify a webhook signature.

        Returns False for every verification failure. A difference of exactly
        the tolerance is still accepted.

        Raises:
            KeySetFetchError: If the key set cannot be fetched
        """
        try:
            timestamp_int = int(timestamp)
        except (TypeError, ValueError):
            self._reject("invalid_timestamp", request_id=request_id)
            return False

        time_diff = abs(int(self._clock()) - timestamp_int)
        if time_diff > self.tolerance_seconds:
            self._reject("timestamp_out_of_window", request_id=request_id, difference_seconds=time_diff)
            return False

        if not all([request_id, user_id, timestamp, signature_hex]):
            self._reject("missing_header_values", request_id=request_id)
            return False

        message = build_canonical_message(request_id, user_id, timestamp, raw_body)

        try:
            signature = bytes.fromhex(signature_hex)
        except (TypeError, ValueError):
            self._reject("malformed_signature", request_id=request_id)
            return False

        public_keys = await self.key_cache.get()
        if not public_keys:
            self._reject("empty_key_set", request_id=request_id)
            return False

        for key_bytes in public_keys:
            if self._verify_with_key(key_bytes, message, signature):
                logger.info("Webhook signature verified", request_id=request_id)
                return True

        self._reject("no_matching_key", request_id=request_id, key_count=len(public_keys))
        return False

    async def verify_headers(self, headers: FalWebhookHeaders, raw_body: bytes) -> bool:
        """Verify using an extracted header set."""
        return await self.verify(
            headers.request_id,
            headers.user_id,
            headers.timestamp,
            headers.signature,
            raw_body,
        )

    @staticmethod
    def _verify_with_key(key_bytes: bytes, message: bytes, signature: bytes) -> bool:
        try:
            Ed25519PublicKey.from_public_bytes(key_bytes).verify(signature, message)
        except (InvalidSignature, ValueError):
            return False
        return True

    @staticmethod
    def _reject(reason: str, **details) -> None:
        log_security_event("webhook_verification_failed", reason=reason, **details)


# Shared instances for the running process
jwks_cache = JWKSCache()
fal_webhook_verifier = FalWebhookVerifier(jwks_cache)
