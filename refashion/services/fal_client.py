"""
Minimal Fal.ai queue client: job submission with a completion webhook and
status lookups.
"""
from typing import Any, Callable, Dict, Literal, Optional

import httpx
from pydantic import BaseModel, Field

from refashion.core.config import settings
from refashion.core.exceptions import ProviderError
from refashion.schemas.fal import PROVIDER_NAME, GenerationOutput, parse_generation_output
from refashion.utils.logging import get_logger
from refashion.utils.retry import with_gemini_retry, with_http_retry

logger = get_logger(__name__)


class VideoGenerationInput(BaseModel):
    """Input accepted by the image-to-video model."""

    prompt: str
    image_url: str
    resolution: Optional[Literal["480p", "720p", "1080p"]] = None
    duration: Optional[str] = None
    camera_fixed: Optional[bool] = None
    seed: Optional[int] = None
    aspect_ratio: Optional[Literal["21:9", "16:9", "4:3", "1:1", "3:4", "9:16", "auto"]] = None
    enable_safety_checker: bool = Field(default=False)

    def to_provider_input(self) -> Dict[str, Any]:
        # Optional parameters are only sent when set
        return self.model_dump(exclude_none=True)


def _app_id(model_id: str) -> str:
    # Queue status routes live under the owner/app prefix of the model path
    return "/".join(model_id.split("/")[:2])


class FalQueueClient:
    """Client for the Fal.ai queue REST API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
    ):
        self.api_key = api_key or settings.require_fal_key()
        self.base_url = (base_url or settings.FAL_QUEUE_URL).rstrip("/")
        self._client_factory = client_factory or (lambda: httpx.AsyncClient(timeout=30.0))

    @property
    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Key {self.api_key}", "Content-Type": "application/json"}

    async def submit(self, model_id: str, input: Dict[str, Any], webhook_url: str) -> str:
        """
        Submit a job to the queue.

        Args:
            model_id: Provider model path
            input: Model input
            webhook_url: URL the provider calls on completion

        Returns:
            Provider request ID
        """
        async def call() -> Dict[str, Any]:
            async with self._client_factory() as client:
                response = await client.post(
                    f"{self.base_url}/{model_id}",
                    params={"fal_webhook": webhook_url},
                    json=input,
                    headers=self._headers,
                )
                response.raise_for_status()
                return response.json()

        data = await with_gemini_retry(call, context=f"Fal.ai submit {model_id}")
        request_id = data.get("request_id") if isinstance(data, dict) else None
        if not request_id:
            raise ProviderError(PROVIDER_NAME, "Queue submission returned no request_id")

        logger.info("Job submitted to provider", model_id=model_id, request_id=request_id)
        return request_id

    async def get_status(self, model_id: str, request_id: str) -> str:
        """Return the provider's queue status for a request."""
        async def call() -> Dict[str, Any]:
            async with self._client_factory() as client:
                response = await client.get(
                    f"{self.base_url}/{_app_id(model_id)}/requests/{request_id}/status",
                    headers=self._headers,
                )
                response.raise_for_status()
                return response.json()

        data = await with_http_retry(call, context=f"Fal.ai status {request_id}")
        return str(data.get("status", "UNKNOWN"))

    async def get_result(self, model_id: str, request_id: str) -> Optional[GenerationOutput]:
        """
        Fetch the result of a completed request.

        Returns:
            The parsed output, or None while the request is still running
        """
        status = await self.get_status(model_id, request_id)
        if status != "COMPLETED":
            logger.info("Provider request still running", request_id=request_id, status=status)
            return None

        async def call() -> Dict[str, Any]:
            async with self._client_factory() as client:
                response = await client.get(
                    f"{self.base_url}/{_app_id(model_id)}/requests/{request_id}",
                    headers=self._headers,
                )
                response.raise_for_status()
                return response.json()

        data = await with_http_retry(call, context=f"Fal.ai result {request_id}")
        return parse_generation_output(data)
