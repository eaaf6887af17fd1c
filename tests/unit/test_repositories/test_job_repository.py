"""
Unit tests for the generation job repository.
"""
import pytest

from refashion.models.job import JobKind, JobStatus
from refashion.repositories.job_repository import JobRepository
from tests.factories import create_job


class TestJobRepository:
    """Test cases for JobRepository."""

    @pytest.fixture
    def repository(self, db):
        return JobRepository(db)

    def test_create_job_starts_processing(self, db, repository):
        job = create_job(db)

        assert job.id
        assert job.status == JobStatus.PROCESSING
        assert repository.exists(job.id)

    def test_complete_job_once(self, db, repository):
        job = create_job(db)

        first = repository.complete_job(job.id, ["https://cdn.fal.test/out.mp4"], seed=7)
        second = repository.complete_job(job.id, ["https://cdn.fal.test/other.mp4"], seed=8)

        assert first is True
        assert second is False
        db.refresh(job)
        assert job.status == JobStatus.COMPLETED
        assert job.output_urls == ["https://cdn.fal.test/out.mp4"]
        assert job.seed == 7
        assert job.completed_at is not None

    def test_terminal_state_is_final(self, db, repository):
        job = create_job(db)

        assert repository.fail_job(job.id, "Invalid image") is True
        assert repository.complete_job(job.id, ["https://cdn.fal.test/out.mp4"]) is False

        db.refresh(job)
        assert job.status == JobStatus.FAILED
        assert job.error == "Invalid image"
        assert job.output_urls is None

    def test_transition_unknown_job(self, repository):
        assert repository.complete_job("missing", ["https://x"]) is False

    def test_provider_request_id_lookup(self, db, repository):
        job = create_job(db)

        repository.set_provider_request_id(job.id, "req-42")

        found = repository.get_by_provider_request_id("req-42")
        assert found is not None
        assert found.id == job.id

    def test_get_status_video(self, db, repository):
        job = create_job(db)
        repository.complete_job(job.id, ["https://cdn.fal.test/out.mp4"], seed=3)
        repository.set_local_video_url(job.id, "/uploads/videos/out.mp4")

        status = repository.get_status(job.id)

        assert status.status == JobStatus.COMPLETED
        assert status.video_url == "https://cdn.fal.test/out.mp4"
        assert status.local_video_url == "/uploads/videos/out.mp4"
        assert status.generated_image_urls is None
        assert status.seed == 3

    def test_get_status_image(self, db, repository):
        job = create_job(db, kind=JobKind.IMAGE)
        repository.complete_job(job.id, ["https://cdn.fal.test/a.png", None])

        status = repository.get_status(job.id)

        assert status.video_url is None
        assert status.generated_image_urls == ["https://cdn.fal.test/a.png", None]

    def test_get_status_unknown(self, repository):
        assert repository.get_status("missing") is None

    def test_list_jobs_filters(self, db, repository):
        first = create_job(db, username="alice")
        create_job(db, username="alice")
        create_job(db, username="bob")
        repository.fail_job(first.id, "boom")

        jobs, total = repository.list_jobs(username="alice")
        failed, failed_total = repository.list_jobs(status=JobStatus.FAILED)

        assert total == 2
        assert len(jobs) == 2
        assert failed_total == 1
        assert failed[0].id == first.id
