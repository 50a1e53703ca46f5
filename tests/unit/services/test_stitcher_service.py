"""Tests for interview assembly."""

import pytest
from unittest.mock import AsyncMock, patch

from api.services import stitcher as stitcher_service
from api.services.links import get_by_token
from api.services.video_answers import submit_answer
from core.errors import NoAnswersError, NotFoundError, NotificationError, StitchingError
from database.models.interview_links import ProcessingStatus


@pytest.fixture
async def recorded_link(db_session, storage, link, questions, candidate_email):
    """Link with answers uploaded out of question order."""
    await submit_answer(db_session, storage, link.unique_token, questions[1].id, candidate_email, b"<two>")
    await submit_answer(db_session, storage, link.unique_token, questions[0].id, candidate_email, b"<one>")
    return link


async def _link_row(db_session, token):
    return (await get_by_token(db_session, token)).link


class TestStitch:
    """Test stitch."""

    async def test_assembles_in_question_order(
        self, db_session, storage, transcoder, email_service, recorded_link, candidate_email
    ):
        result = await stitcher_service.stitch(
            db_session, storage, transcoder, email_service, recorded_link.unique_token
        )

        assert result.from_cache is False
        assert result.url.endswith("final_interview.mp4")
        assert await storage.download(storage.key_from_url(result.url)) == b"<one><two>"
        assert transcoder.overlays == [
            (1, "Tell us about yourself"),
            (2, "Describe a hard bug you fixed"),
        ]
        assert transcoder.concats == [["processed_1.mp4", "processed_2.mp4"]]

        row = await _link_row(db_session, recorded_link.unique_token)
        assert row.stitched_video_url == result.url
        assert row.stitched_at is not None
        assert row.processing_status == ProcessingStatus.COMPLETED.value

        email_service.send.assert_awaited_once()
        to_email, subject, body = email_service.send.await_args.args
        assert to_email == candidate_email
        assert "Backend Engineer" in subject
        assert result.url in body

    async def test_second_call_returns_cache(self, db_session, storage, transcoder, email_service, recorded_link):
        first = await stitcher_service.stitch(
            db_session, storage, transcoder, email_service, recorded_link.unique_token
        )
        second = await stitcher_service.stitch(
            db_session, storage, transcoder, email_service, recorded_link.unique_token
        )

        assert second.from_cache is True
        assert second.url == first.url
        assert len(transcoder.concats) == 1
        assert email_service.send.await_count == 1

    async def test_final_key(self):
        assert stitcher_service.final_video_key("a@b.co", "tok") == "a@b.co/tok/final_interview.mp4"

    async def test_unknown_token(self, db_session, storage, transcoder, email_service):
        with pytest.raises(NotFoundError):
            await stitcher_service.stitch(db_session, storage, transcoder, email_service, "missing")

    async def test_no_answers_marks_failed(self, db_session, storage, transcoder, email_service, link):
        with pytest.raises(NoAnswersError):
            await stitcher_service.stitch(db_session, storage, transcoder, email_service, link.unique_token)

        row = await _link_row(db_session, link.unique_token)
        assert row.processing_status == ProcessingStatus.FAILED.value
        assert row.stitched_video_url is None

    async def test_transcoder_failure_marks_failed(
        self, db_session, storage, failing_transcoder, email_service, recorded_link
    ):
        with pytest.raises(StitchingError):
            await stitcher_service.stitch(
                db_session, storage, failing_transcoder, email_service,
                recorded_link.unique_token,
            )

        row = await _link_row(db_session, recorded_link.unique_token)
        assert row.processing_status == ProcessingStatus.FAILED.value
        email_service.send.assert_not_awaited()

    async def test_unexpected_error_wrapped(self, db_session, storage, transcoder, email_service, recorded_link):
        with patch.object(storage, "put", AsyncMock(side_effect=RuntimeError("disk full"))):
            with pytest.raises(StitchingError, match="Failed to assemble interview video"):
                await stitcher_service.stitch(
                    db_session, storage, transcoder, email_service, recorded_link.unique_token
                )

        row = await _link_row(db_session, recorded_link.unique_token)
        assert row.processing_status == ProcessingStatus.FAILED.value

    async def test_failed_run_can_be_retried(self, db_session, storage, transcoder, email_service, recorded_link):
        with patch.object(storage, "put", AsyncMock(side_effect=RuntimeError("disk full"))):
            with pytest.raises(StitchingError):
                await stitcher_service.stitch(
                    db_session, storage, transcoder, email_service, recorded_link.unique_token
                )

        result = await stitcher_service.stitch(
            db_session, storage, transcoder, email_service, recorded_link.unique_token
        )

        assert result.from_cache is False
        row = await _link_row(db_session, recorded_link.unique_token)
        assert row.processing_status == ProcessingStatus.COMPLETED.value

    async def test_email_failure_does_not_fail_assembly(
        self, db_session, storage, transcoder, email_service, recorded_link
    ):
        email_service.send.side_effect = NotificationError("SMTP down")

        result = await stitcher_service.stitch(
            db_session, storage, transcoder, email_service, recorded_link.unique_token
        )

        assert result.from_cache is False

    async def test_unresolvable_answer_url(self, db_session, storage, transcoder, email_service, recorded_link):
        with patch.object(storage, "key_from_url", return_value=None):
            with pytest.raises(StitchingError, match="cannot be resolved"):
                await stitcher_service.stitch(
                    db_session, storage, transcoder, email_service, recorded_link.unique_token
                )
