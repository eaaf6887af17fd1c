"""
API version 1 router configuration.
"""

from fastapi import APIRouter

from refashion.api.v1 import jobs, webhooks

api_router = APIRouter()

# Include generation job routes
api_router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])

# Include webhook routes
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
