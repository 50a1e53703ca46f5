"""Tests for the deferred assembly Celery task."""

import time

import pytest
from celery.exceptions import Retry
from unittest.mock import AsyncMock, MagicMock, patch

from api.services.stitcher import StitchResult
from core.errors import NotFoundError, StitchingError
from workers.tasks import stitching


@pytest.fixture
def progress():
    with patch("workers.tasks.stitching._progress", new_callable=AsyncMock) as mock:
        yield mock


@pytest.fixture
def assemble():
    with patch("workers.tasks.stitching._assemble", new_callable=AsyncMock) as mock:
        mock.return_value = StitchResult(url="https://cdn.example.com/final.mp4", from_cache=False)
        yield mock


class TestStitchInterviewTask:
    """Test stitch_interview."""

    def test_assembles_when_complete(self, progress, assemble):
        progress.return_value = (3, 3)

        result = stitching.stitch_interview("tok")

        assert result == {
            "status": "completed",
            "stitched_url": "https://cdn.example.com/final.mp4",
            "from_cache": False,
            "answer_count": 3,
        }
        assemble.assert_awaited_once_with("tok")

    def test_retries_while_answers_missing(self, progress, assemble):
        progress.return_value = (1, 3)

        with pytest.raises(Retry):
            stitching.stitch_interview("tok", started_at=time.time())

        assemble.assert_not_awaited()

    def test_assembles_partial_after_max_wait(self, progress, assemble):
        progress.return_value = (2, 3)
        started_at = time.time() - stitching.settings.stitch_max_wait_seconds - 1

        result = stitching.stitch_interview("tok", started_at=started_at)

        assert result["status"] == "completed"
        assert result["answer_count"] == 2

    def test_skips_when_nothing_recorded(self, progress, assemble):
        progress.return_value = (0, 3)
        started_at = time.time() - stitching.settings.stitch_max_wait_seconds - 1

        result = stitching.stitch_interview("tok", started_at=started_at)

        assert result == {"status": "skipped", "reason": "no_answers"}
        assemble.assert_not_awaited()

    def test_skips_unknown_link(self, progress, assemble):
        progress.side_effect = NotFoundError("Interview link not found")

        result = stitching.stitch_interview("tok")

        assert result == {"status": "skipped", "reason": "link_not_found"}

    def test_reports_failure(self, progress, assemble):
        progress.return_value = (2, 2)
        assemble.side_effect = StitchingError("Failed to assemble interview video")

        result = stitching.stitch_interview("tok")

        assert result == {"status": "failed", "error": "Failed to assemble interview video"}


class TestQueueStitch:
    """Test queue_stitch."""

    def test_schedules_after_grace_period(self):
        task = MagicMock()
        task.apply_async.return_value = MagicMock(id="task-123")

        with patch("workers.tasks.stitching.stitch_interview", task):
            task_id = stitching.queue_stitch("tok")

        assert task_id == "task-123"
        task.apply_async.assert_called_once_with(
            args=["tok"], countdown=stitching.settings.stitch_grace_seconds
        )
