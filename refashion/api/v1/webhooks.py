"""
Inbound provider webhook endpoints.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError

from refashion.api.deps import get_job_service
from refashion.api.middleware.webhook_auth import fal_webhook_auth
from refashion.schemas.fal import FalWebhookBody
from refashion.schemas.job import WebhookReceipt
from refashion.services.job_service import JobService
from refashion.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/fal",
    response_model=WebhookReceipt,
    status_code=status.HTTP_200_OK,
    summary="Receive Fal.ai webhook",
    description="Receive signed job completion notifications from Fal.ai",
)
def receive_fal_webhook(
    job_id: str = Query(..., min_length=1, description="Job the callback belongs to"),
    auth_data: Dict[str, Any] = Depends(fal_webhook_auth),
    job_service: JobService = Depends(get_job_service),
):
    """
    Receive a Fal.ai completion webhook.

    The signature is verified by the auth dependency before the body is
    parsed. Follow-up work is queued on the worker, so the provider gets an
    answer right away.
    """
    try:
        body = FalWebhookBody.model_validate_json(auth_data["raw_body"])
    except ValidationError as e:
        logger.warning("Invalid webhook body", job_id=job_id, errors=e.error_count())
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Invalid webhook body",
        )

    applied = job_service.apply_provider_result(job_id, body)

    logger.info("Webhook processed", job_id=job_id, request_id=body.request_id, applied=applied)
    return WebhookReceipt(job_id=job_id, applied=applied)
