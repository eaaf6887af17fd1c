"""
Integration tests for the job API endpoints.
"""
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from refashion.api.deps import get_fal_client
from refashion.core.config import settings
from refashion.core.exceptions import RetryExhaustedError
from refashion.main import app
from refashion.models.job import JobKind, JobStatus
from refashion.repositories.job_repository import JobRepository
from refashion.services.fal_client import FalQueueClient
from tests.factories import create_job

VIDEO_REQUEST = {
    "username": "alice",
    "prompt": "model walks towards the camera",
    "image_url": "https://example.com/in.png",
    "resolution": "720p",
    "duration": "5",
}


def override_fal_client(submit: AsyncMock) -> MagicMock:
    fal_client = MagicMock(spec=FalQueueClient)
    fal_client.submit = submit
    app.dependency_overrides[get_fal_client] = lambda: fal_client
    return fal_client


class TestJobStatus:
    """Test the polling endpoint."""

    def test_processing(self, client: TestClient, db: Session):
        job = create_job(db)

        response = client.get(f"/api/v1/jobs/{job.id}/status")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "processing"
        assert data["videoUrl"] is None

    def test_completed_video(self, client: TestClient, db: Session):
        job = create_job(db)
        repo = JobRepository(db)
        repo.complete_job(job.id, ["https://cdn.fal.test/out.mp4"], seed=9)
        repo.set_local_video_url(job.id, "/uploads/videos/out.mp4")

        data = client.get(f"/api/v1/jobs/{job.id}/status").json()

        assert data["status"] == "completed"
        assert data["videoUrl"] == "https://cdn.fal.test/out.mp4"
        assert data["localVideoUrl"] == "/uploads/videos/out.mp4"
        assert data["seed"] == 9

    def test_completed_images(self, client: TestClient, db: Session):
        job = create_job(db, kind=JobKind.IMAGE)
        JobRepository(db).complete_job(job.id, ["https://cdn.fal.test/a.png", None])

        data = client.get(f"/api/v1/jobs/{job.id}/status").json()

        assert data["generatedImageUrls"] == ["https://cdn.fal.test/a.png", None]

    def test_unknown_job(self, client: TestClient):
        response = client.get("/api/v1/jobs/missing/status")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "JOB_NOT_FOUND"
        assert body["details"] == {"job_id": "missing"}


class TestSubmitVideoJob:
    """Test video job submission."""

    def test_accepted(self, client: TestClient, db: Session):
        fal_client = override_fal_client(AsyncMock(return_value="req-7"))

        response = client.post("/api/v1/jobs/video", json=VIDEO_REQUEST)

        assert response.status_code == 202
        data = response.json()
        assert data["status"] == "processing"
        job = JobRepository(db).get(data["jobId"])
        assert job.provider_request_id == "req-7"
        fal_client.submit.assert_awaited_once()

    def test_provider_failure(self, client: TestClient, db: Session):
        error = RetryExhaustedError("Fal.ai submit", 5, Exception("Service unavailable"))
        override_fal_client(AsyncMock(side_effect=error))

        response = client.post("/api/v1/jobs/video", json=VIDEO_REQUEST)

        assert response.status_code == 502
        assert response.json()["error"] == "RETRY_EXHAUSTED"
        jobs, _ = JobRepository(db).list_jobs(username="alice")
        assert jobs[0].status == JobStatus.FAILED

    def test_missing_provider_key(self, client: TestClient):
        with patch.object(settings, "FAL_KEY", None):
            response = client.post("/api/v1/jobs/video", json=VIDEO_REQUEST)

        assert response.status_code == 503
        assert response.json()["error"] == "CONFIGURATION_ERROR"

    def test_invalid_request(self, client: TestClient):
        response = client.post("/api/v1/jobs/video", json={**VIDEO_REQUEST, "duration": "30"})

        assert response.status_code == 422


class TestListJobs:
    """Test job listing."""

    def test_filter_by_username(self, client: TestClient, db: Session):
        create_job(db, username="alice")
        create_job(db, username="bob")

        data = client.get("/api/v1/jobs", params={"username": "alice"}).json()

        assert data["total"] == 1
        assert data["items"][0]["username"] == "alice"

    def test_filter_by_status(self, client: TestClient, db: Session):
        job = create_job(db)
        create_job(db)
        JobRepository(db).fail_job(job.id, "boom")

        data = client.get("/api/v1/jobs", params={"status": "failed"}).json()

        assert data["total"] == 1
        assert data["items"][0]["id"] == job.id


def test_health_check(client: TestClient):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
