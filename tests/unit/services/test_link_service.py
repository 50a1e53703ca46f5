"""
Tests for the interview link service.

Tests:
- Link issuing (token, expiry, validation)
- Token lookup with role and interviewer context
- Readable / writable predicates and error precedence
- Marking links used
- Listing links of an interview
"""

import pytest
from datetime import timedelta
from unittest.mock import patch
from sqlalchemy.exc import SQLAlchemyError

from api.services import links as link_service
from api.services.interviews import get_or_create_interview
from core.errors import AlreadyUsedError, ExpiredError, NotFoundError, ValidationError
from core.utils.datetime import ensure_utc, now as utcnow
from database.models.interview_links import InterviewLink


# ==================== Issuing ==================== #

class TestCreateLink:
    """Test create_link."""

    async def test_creates_unused_link_with_seven_day_expiry(self, db_session, role, candidate_email):
        """A new link is unused and expires roughly a week out."""
        interview = await get_or_create_interview(db_session, role.id)

        link = await link_service.create_link(db_session, candidate_email, interview.id)

        assert link.id is not None
        assert link.used is False
        assert link.candidate_email == candidate_email
        remaining = ensure_utc(link.expires_at) - utcnow()
        assert timedelta(days=6, hours=23) < remaining <= timedelta(days=7, minutes=1)

    async def test_tokens_are_unique_and_url_safe(self, db_session, role, candidate_email):
        interview = await get_or_create_interview(db_session, role.id)

        first = await link_service.create_link(db_session, candidate_email, interview.id)
        second = await link_service.create_link(db_session, candidate_email, interview.id)

        assert first.unique_token != second.unique_token
        assert len(first.unique_token) >= 40
        assert all(c.isalnum() or c in "-_" for c in first.unique_token)

    @pytest.mark.parametrize("days", [0, -3, "abc", None])
    async def test_invalid_expiry_falls_back_to_default(self, db_session, role, candidate_email, days):
        interview = await get_or_create_interview(db_session, role.id)

        link = await link_service.create_link(db_session, candidate_email, interview.id, days)

        remaining = ensure_utc(link.expires_at) - utcnow()
        assert remaining > timedelta(days=6, hours=23)

    async def test_custom_expiry(self, db_session, role, candidate_email):
        interview = await get_or_create_interview(db_session, role.id)

        link = await link_service.create_link(db_session, candidate_email, interview.id, 2)

        remaining = ensure_utc(link.expires_at) - utcnow()
        assert timedelta(days=1, hours=23) < remaining <= timedelta(days=2, minutes=1)

    async def test_invalid_email_rejected(self, db_session, role):
        interview = await get_or_create_interview(db_session, role.id)

        with pytest.raises(ValidationError, match="Invalid email address format"):
            await link_service.create_link(db_session, "not-an-email", interview.id)

    @pytest.mark.parametrize("interview_id", [0, -1, None, "7", True])
    async def test_invalid_interview_id_rejected(self, db_session, candidate_email, interview_id):
        with pytest.raises(ValidationError, match="A valid interview ID is required"):
            await link_service.create_link(db_session, candidate_email, interview_id)

    def test_interview_url(self):
        with patch.object(link_service.settings, "frontend_url", "https://app.example.com/"):
            assert link_service.interview_url("abc") == "https://app.example.com/interview/abc"


# ==================== Lookup ==================== #

class TestGetByToken:
    """Test get_by_token."""

    async def test_returns_enriched_details(self, db_session, link, role, interviewer):
        details = await link_service.get_by_token(db_session, link.unique_token)

        assert details is not None
        assert details.token == link.unique_token
        assert details.role_id == role.id
        assert details.role_title == "Backend Engineer"
        assert details.interviewer_id == interviewer.id
        assert details.interviewer_email == interviewer.email
        assert details.interviewer_name == "Olivia Owner"

    async def test_unknown_token(self, db_session, link):
        assert await link_service.get_by_token(db_session, "missing") is None

    async def test_empty_token(self, db_session):
        assert await link_service.get_by_token(db_session, "") is None

    async def test_falls_back_to_bare_link_when_enriched_query_fails(self, db_session, link, role):
        """A failing join still yields the link and its role id."""
        execute = db_session.execute

        async def fail_first(*args, **kwargs):
            if flaky.await_count == 1:
                raise SQLAlchemyError("relation does not exist")
            return await execute(*args, **kwargs)

        with patch.object(db_session, "execute", side_effect=fail_first) as flaky:
            details = await link_service.get_by_token(db_session, link.unique_token)

        assert flaky.await_count == 2
        assert details.token == link.unique_token
        assert details.role_id == role.id
        assert details.role_title is None
        assert details.interviewer_id is None


class TestAccessPredicates:
    """Test require_readable and require_writable."""

    async def test_fresh_link_is_writable(self, db_session, link):
        details = await link_service.require_writable(db_session, link.unique_token)
        assert details.link.id == link.id

    async def test_unknown_token_is_not_found(self, db_session):
        with pytest.raises(NotFoundError, match="Invalid interview link"):
            await link_service.require_readable(db_session, "nope")

    async def test_expired_link(self, db_session, link, expire_link):
        await expire_link(db_session, link.unique_token)

        with pytest.raises(ExpiredError, match="expired"):
            await link_service.require_readable(db_session, link.unique_token)

    async def test_used_link_stays_readable(self, db_session, link):
        await link_service.mark_used(db_session, link.unique_token)

        details = await link_service.require_readable(db_session, link.unique_token)

        assert details.link.used is True

    async def test_used_link_is_not_writable(self, db_session, link):
        await link_service.mark_used(db_session, link.unique_token)

        with pytest.raises(AlreadyUsedError, match="already been used"):
            await link_service.require_writable(db_session, link.unique_token)

    async def test_expiry_reported_before_use(self, db_session, link, expire_link):
        """A link that is both used and expired reports expiry."""
        await link_service.mark_used(db_session, link.unique_token)
        await expire_link(db_session, link.unique_token)

        with pytest.raises(ExpiredError):
            await link_service.require_writable(db_session, link.unique_token)


class TestLinkPredicates:
    """Test InterviewLink.is_readable and is_writable."""

    @pytest.mark.parametrize("used,expires_in,readable,writable", [
        (False, timedelta(hours=1), True, True),
        (True, timedelta(hours=1), True, False),
        (False, -timedelta(seconds=1), False, False),
        (True, -timedelta(days=1), False, False),
    ])
    def test_predicates(self, used, expires_in, readable, writable):
        at = utcnow()
        link = InterviewLink(candidate_email="a@example.com", expires_at=at + expires_in, used=used)

        assert link.is_readable(at) is readable
        assert link.is_writable(at) is writable

    def test_naive_expiry_treated_as_utc(self):
        at = utcnow()
        link = InterviewLink(expires_at=(at + timedelta(minutes=5)).replace(tzinfo=None), used=False)

        assert link.is_writable(at) is True
        assert link.is_readable(at + timedelta(minutes=10)) is False


class TestMarkUsed:
    """Test mark_used."""

    async def test_marking_twice_is_a_no_op(self, db_session, link):
        await link_service.mark_used(db_session, link.unique_token)
        await link_service.mark_used(db_session, link.unique_token)

        details = await link_service.get_by_token(db_session, link.unique_token)
        assert details.link.used is True

    async def test_unknown_token(self, db_session):
        with pytest.raises(NotFoundError):
            await link_service.mark_used(db_session, "missing")


class TestListLinks:
    """Test list_links_for_interview."""

    async def test_lists_links_newest_first(self, db_session, role, candidate_email):
        interview = await get_or_create_interview(db_session, role.id)
        older = await link_service.create_link(db_session, candidate_email, interview.id)
        newer = await link_service.create_link(db_session, "sam@example.com", interview.id)

        links = await link_service.list_links_for_interview(db_session, interview.id)

        assert [item["id"] for item in links] == [newer.id, older.id]
        assert links[0]["interview_url"].endswith(f"/interview/{newer.unique_token}")
        assert links[0]["candidate_name"] is None

    async def test_empty_interview(self, db_session, role):
        interview = await get_or_create_interview(db_session, role.id)

        assert await link_service.list_links_for_interview(db_session, interview.id) == []
