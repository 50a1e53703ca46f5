"""Tests for the question service."""

import pytest

from api.services import questions as question_service
from api.services.interviews import get_or_create_interview
from api.services.links import create_link, mark_used
from api.services.roles import create_role
from core.errors import ExpiredError, NotFoundError, OwnershipError, ValidationError


class TestCreateQuestion:
    """Test create_question."""

    async def test_creates_question(self, db_session, role):
        question = await question_service.create_question(db_session, role.id, "  Why us?  ", 3)

        assert question.id is not None
        assert question.role_id == role.id
        assert question.question_text == "Why us?"
        assert question.question_order == 3

    @pytest.mark.parametrize("order", [0, 11, -1, "2", True, None])
    async def test_order_out_of_range(self, db_session, role, order):
        with pytest.raises(ValidationError, match="between 1 and 10"):
            await question_service.create_question(db_session, role.id, "Question", order)

    @pytest.mark.parametrize("text", ["", "   ", None])
    async def test_text_required(self, db_session, role, text):
        with pytest.raises(ValidationError, match="question_text is required"):
            await question_service.create_question(db_session, role.id, text, 1)

    async def test_unknown_role(self, db_session):
        with pytest.raises(NotFoundError, match="Role not found"):
            await question_service.create_question(db_session, 999, "Question", 1)

    async def test_eleventh_question_rejected(self, db_session, role):
        for order in range(1, 11):
            await question_service.create_question(db_session, role.id, f"Question {order}", order)

        with pytest.raises(ValidationError, match="Maximum of 10 questions allowed per role"):
            await question_service.create_question(db_session, role.id, "One too many", 5)

        assert await question_service.count_questions(db_session, role.id) == 10

    async def test_duplicate_orders_allowed(self, db_session, role):
        first = await question_service.create_question(db_session, role.id, "First", 2)
        second = await question_service.create_question(db_session, role.id, "Second", 2)

        listed = await question_service.list_questions(db_session, role.id)

        assert [q.id for q in listed] == [first.id, second.id]


class TestListQuestions:
    """Test list_questions ordering."""

    async def test_sorted_by_order(self, db_session, role):
        third = await question_service.create_question(db_session, role.id, "C", 3)
        first = await question_service.create_question(db_session, role.id, "A", 1)
        second = await question_service.create_question(db_session, role.id, "B", 2)

        listed = await question_service.list_questions(db_session, role.id)

        assert [q.id for q in listed] == [first.id, second.id, third.id]

    async def test_role_without_questions(self, db_session, role):
        assert await question_service.list_questions(db_session, role.id) == []


class TestUpdateAndDelete:
    """Test update_question and delete_question."""

    async def test_update_text(self, db_session, questions):
        updated = await question_service.update_question(db_session, questions[0].id, "New text")

        assert updated.question_text == "New text"
        assert updated.question_order == 1

    async def test_update_requires_text(self, db_session, questions):
        with pytest.raises(ValidationError):
            await question_service.update_question(db_session, questions[0].id, "  ")

    async def test_update_unknown(self, db_session):
        with pytest.raises(NotFoundError, match="Question not found"):
            await question_service.update_question(db_session, 404, "Text")

    async def test_delete_question(self, db_session, role, questions):
        await question_service.delete_question(db_session, questions[0].id)

        remaining = await question_service.list_questions(db_session, role.id)
        assert [q.id for q in remaining] == [questions[1].id]

    async def test_last_question_cannot_be_deleted(self, db_session, role, questions):
        await question_service.delete_question(db_session, questions[0].id)

        with pytest.raises(ValidationError, match="at least one question"):
            await question_service.delete_question(db_session, questions[1].id)

        assert await question_service.count_questions(db_session, role.id) == 1

    async def test_delete_unknown(self, db_session):
        with pytest.raises(NotFoundError):
            await question_service.delete_question(db_session, 404)


class TestOwnership:
    """Test require_question_owner."""

    async def test_owner(self, db_session, interviewer, questions):
        question = await question_service.require_question_owner(
            db_session, questions[0].id, interviewer.id
        )
        assert question.id == questions[0].id

    async def test_other_interviewer(self, db_session, questions):
        with pytest.raises(OwnershipError):
            await question_service.require_question_owner(db_session, questions[0].id, 999)

    async def test_unknown_question(self, db_session, interviewer):
        with pytest.raises(NotFoundError):
            await question_service.require_question_owner(db_session, 404, interviewer.id)


class TestReorder:
    """Test reorder_questions."""

    async def test_swaps_orders(self, db_session, role, questions):
        first, second = questions

        reordered = await question_service.reorder_questions(
            db_session,
            role.id,
            [
                {"question_id": first.id, "question_order": 2},
                {"question_id": second.id, "question_order": 1},
            ],
        )

        assert [(q.id, q.question_order) for q in reordered] == [(second.id, 1), (first.id, 2)]

    async def test_invalid_order_changes_nothing(self, db_session, role, questions):
        first, second = questions

        with pytest.raises(ValidationError):
            await question_service.reorder_questions(
                db_session,
                role.id,
                [
                    {"question_id": first.id, "question_order": 2},
                    {"question_id": second.id, "question_order": 42},
                ],
            )

        listed = await question_service.list_questions(db_session, role.id)
        assert [q.question_order for q in listed] == [1, 2]

    async def test_questions_of_other_roles_untouched(self, db_session, interviewer, role, questions):
        other_role = await create_role(db_session, interviewer.id, "Designer")
        foreign = await question_service.create_question(db_session, other_role.id, "Portfolio?", 1)

        await question_service.reorder_questions(
            db_session, role.id, [{"question_id": foreign.id, "question_order": 9}]
        )

        refreshed = await question_service.list_questions(db_session, other_role.id)
        assert refreshed[0].question_order == 1


class TestQuestionsForToken:
    """Test list_questions_for_token."""

    async def test_lists_questions_of_linked_role(self, db_session, link, questions):
        listed = await question_service.list_questions_for_token(db_session, link.unique_token)

        assert [q.id for q in listed] == [q.id for q in questions]

    async def test_used_link_still_readable(self, db_session, link, questions):
        await mark_used(db_session, link.unique_token)

        listed = await question_service.list_questions_for_token(db_session, link.unique_token)

        assert len(listed) == 2

    async def test_expired_link(self, db_session, link, expire_link):
        await expire_link(db_session, link.unique_token)

        with pytest.raises(ExpiredError):
            await question_service.list_questions_for_token(db_session, link.unique_token)

    async def test_unknown_token(self, db_session):
        with pytest.raises(NotFoundError):
            await question_service.list_questions_for_token(db_session, "missing")

    async def test_role_without_questions(self, db_session, role, candidate_email):
        interview = await get_or_create_interview(db_session, role.id)
        link = await create_link(db_session, candidate_email, interview.id)

        assert await question_service.list_questions_for_token(db_session, link.unique_token) == []
