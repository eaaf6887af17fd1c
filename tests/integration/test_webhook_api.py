"""
Integration tests for the provider webhook endpoint.
"""
import asyncio
import time

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from refashion.api.deps import get_fal_verifier
from refashion.main import app
from refashion.models.job import JobStatus
from refashion.utils.webhook_security import FalWebhookVerifier, JWKSCache
from tests.factories import (
    create_job,
    error_webhook_body,
    signed_headers,
    video_webhook_body,
)


class TestFalWebhookReceiver:
    """Test the Fal.ai webhook receiver."""

    def test_completed_webhook_applied(self, client: TestClient, db: Session, signing_key, dispatcher):
        job = create_job(db)
        body = video_webhook_body()

        response = client.post(
            f"/api/v1/webhooks/fal?job_id={job.id}",
            content=body,
            headers=signed_headers(signing_key, body),
        )

        assert response.status_code == 200
        assert response.json() == {"status": "received", "job_id": job.id, "applied": True}
        db.refresh(job)
        assert job.status == JobStatus.COMPLETED
        assert job.output_urls == ["https://cdn.fal.test/out.mp4"]
        dispatcher.dispatch_terminal_effects.assert_called_once()

    def test_dispatch_runs_off_the_event_loop(self, client: TestClient, db: Session, signing_key, dispatcher):
        loops = []

        def record_loop(job):
            try:
                loops.append(asyncio.get_running_loop())
            except RuntimeError:
                loops.append(None)
            return []

        dispatcher.dispatch_terminal_effects.side_effect = record_loop
        job = create_job(db)
        body = video_webhook_body()

        response = client.post(
            f"/api/v1/webhooks/fal?job_id={job.id}",
            content=body,
            headers=signed_headers(signing_key, body),
        )

        assert response.status_code == 200
        assert loops == [None]

    def test_duplicate_webhook_is_noop(self, client: TestClient, db: Session, signing_key, dispatcher):
        job = create_job(db)
        body = video_webhook_body()
        headers = signed_headers(signing_key, body)

        first = client.post(f"/api/v1/webhooks/fal?job_id={job.id}", content=body, headers=headers)
        second = client.post(f"/api/v1/webhooks/fal?job_id={job.id}", content=body, headers=headers)

        assert first.json()["applied"] is True
        assert second.status_code == 200
        assert second.json()["applied"] is False
        dispatcher.dispatch_terminal_effects.assert_called_once()

    def test_error_webhook_fails_job(self, client: TestClient, db: Session, signing_key):
        job = create_job(db)
        body = error_webhook_body(error="Content policy violation")

        response = client.post(
            f"/api/v1/webhooks/fal?job_id={job.id}",
            content=body,
            headers=signed_headers(signing_key, body),
        )

        assert response.status_code == 200
        status_response = client.get(f"/api/v1/jobs/{job.id}/status")
        assert status_response.json()["status"] == "failed"
        assert status_response.json()["error"] == "Content policy violation"

    def test_tampered_body_rejected(self, client: TestClient, db: Session, signing_key, dispatcher):
        job = create_job(db)
        body = video_webhook_body()
        headers = signed_headers(signing_key, body)
        tampered = video_webhook_body(video_url="https://evil.test/out.mp4")

        response = client.post(f"/api/v1/webhooks/fal?job_id={job.id}", content=tampered, headers=headers)

        assert response.status_code == 401
        assert response.json()["error"] == "WEBHOOK_VERIFICATION_ERROR"
        db.refresh(job)
        assert job.status == JobStatus.PROCESSING
        dispatcher.dispatch_terminal_effects.assert_not_called()

    def test_expired_timestamp_rejected(self, client: TestClient, db: Session, signing_key):
        job = create_job(db)
        body = video_webhook_body()
        headers = signed_headers(signing_key, body, timestamp=int(time.time()) - 3600)

        response = client.post(f"/api/v1/webhooks/fal?job_id={job.id}", content=body, headers=headers)

        assert response.status_code == 401

    @pytest.mark.parametrize("header", [
        "X-Fal-Webhook-Request-Id",
        "X-Fal-Webhook-User-Id",
        "X-Fal-Webhook-Timestamp",
        "X-Fal-Webhook-Signature",
    ])
    def test_missing_header_rejected(self, client: TestClient, db: Session, signing_key, header):
        job = create_job(db)
        body = video_webhook_body()
        headers = signed_headers(signing_key, body)
        del headers[header]

        response = client.post(f"/api/v1/webhooks/fal?job_id={job.id}", content=body, headers=headers)

        assert response.status_code == 401

    def test_invalid_json_after_verification(self, client: TestClient, db: Session, signing_key):
        job = create_job(db)
        body = b"not json"

        response = client.post(
            f"/api/v1/webhooks/fal?job_id={job.id}",
            content=body,
            headers=signed_headers(signing_key, body),
        )

        assert response.status_code == 422

    def test_unknown_job(self, client: TestClient, signing_key):
        body = video_webhook_body()

        response = client.post(
            "/api/v1/webhooks/fal?job_id=missing",
            content=body,
            headers=signed_headers(signing_key, body),
        )

        assert response.status_code == 404
        assert response.json()["error"] == "JOB_NOT_FOUND"

    def test_key_set_unavailable(self, client: TestClient, db: Session, signing_key):
        job = create_job(db)
        body = video_webhook_body()
        cache = JWKSCache(
            url="https://jwks.test/keys",
            ttl_seconds=3600,
            timeout_seconds=1.0,
            client_factory=lambda: httpx.AsyncClient(
                transport=httpx.MockTransport(lambda request: httpx.Response(500))
            ),
        )
        app.dependency_overrides[get_fal_verifier] = lambda: FalWebhookVerifier(cache, tolerance_seconds=300)

        response = client.post(
            f"/api/v1/webhooks/fal?job_id={job.id}",
            content=body,
            headers=signed_headers(signing_key, body),
        )

        assert response.status_code == 503
        assert response.json()["error"] == "KEY_SET_FETCH_ERROR"
        db.refresh(job)
        assert job.status == JobStatus.PROCESSING
