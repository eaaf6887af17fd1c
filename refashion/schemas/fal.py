"""
Fal.ai webhook body and generation output schemas.

Provider results come in a few known shapes. Each shape is an explicit
variant validated at the boundary instead of being probed field by field.
"""
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from refashion.core.exceptions import ProviderError

PROVIDER_NAME = "fal"


class FalFile(BaseModel):
    """A file reference in a provider result."""

    url: str = Field(..., min_length=1)
    content_type: Optional[str] = None


class VideoOutput(BaseModel):
    """Result of an image-to-video model."""

    kind: Literal["video"] = "video"
    video: FalFile
    seed: Optional[int] = None

    @property
    def urls(self) -> List[str]:
        return [self.video.url]


class ImagesOutput(BaseModel):
    """Result of an image model returning several images."""

    kind: Literal["images"] = "images"
    images: List[FalFile] = Field(..., min_length=1)
    seed: Optional[int] = None

    @property
    def urls(self) -> List[str]:
        return [image.url for image in self.images]


class ImageOutput(BaseModel):
    """Result of an image model returning a single image."""

    kind: Literal["image"] = "image"
    image: FalFile
    seed: Optional[int] = None

    @property
    def urls(self) -> List[str]:
        return [self.image.url]


GenerationOutput = Union[VideoOutput, ImagesOutput, ImageOutput]

_OUTPUT_VARIANTS = (
    ("video", VideoOutput),
    ("images", ImagesOutput),
    ("image", ImageOutput),
)


def parse_generation_output(payload: Optional[Dict[str, Any]]) -> GenerationOutput:
    """
    Validate a provider result against the known output variants.

    Args:
        payload: The provider's result object

    Returns:
        The matching output variant

    Raises:
        ProviderError: If the payload matches no known variant
    """
    if not isinstance(payload, dict):
        raise ProviderError(PROVIDER_NAME, "Provider result is empty or not an object")

    for key, variant in _OUTPUT_VARIANTS:
        if key not in payload:
            continue
        data = {k: v for k, v in payload.items() if k != "kind"}
        try:
            return variant.model_validate(data)
        except ValidationError as exc:
            raise ProviderError(
                PROVIDER_NAME,
                f"Invalid {key} result from provider",
                errors=[error["msg"] for error in exc.errors()],
            ) from exc

    raise ProviderError(
        PROVIDER_NAME,
        "Unrecognised provider result shape",
        keys=sorted(payload.keys()),
    )


class FalWebhookBody(BaseModel):
    """Body of a Fal.ai queue completion webhook."""

    request_id: str
    gateway_request_id: Optional[str] = None
    status: Literal["OK", "ERROR"]
    payload: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    payload_error: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.status == "OK"

    def failure_message(self) -> str:
        return self.error or self.payload_error or "Generation failed at provider"
