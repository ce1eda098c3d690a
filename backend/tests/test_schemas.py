"""
Tests for Pydantic schemas validation.
"""
import pytest
from decimal import Decimal
from pydantic import ValidationError

from app.schemas.automation import ActivateRequest, AutoCommentLogRequest
from app.schemas.content import QuizGenerateRequest, RefineRequest
from app.schemas.credits import AdminGrantRequest, AdminResetRequest, CreditBalanceResponse
from app.services.credit_service import CreditSnapshot


class TestCreditSchemas:
    """Tests for credit schemas."""

    def test_balance_from_snapshot(self):
        snapshot = CreditSnapshot.from_units("uid", 1000, 825)

        schema = CreditBalanceResponse.from_snapshot(snapshot)

        assert schema.credits_total == 10.0
        assert schema.credits_used == 8.25
        assert schema.credits_remaining == 1.75

    def test_grant_valid(self):
        schema = AdminGrantRequest(user_id="uid", amount="2.50")
        assert schema.amount == Decimal("2.50")
        assert schema.ledger == "ai"

    def test_grant_too_many_decimals(self):
        with pytest.raises(ValidationError):
            AdminGrantRequest(user_id="uid", amount="0.125")

    def test_grant_non_positive(self):
        with pytest.raises(ValidationError):
            AdminGrantRequest(user_id="uid", amount=0)

    def test_grant_unknown_ledger(self):
        with pytest.raises(ValidationError):
            AdminGrantRequest(user_id="uid", amount=1, ledger="bonus")

    def test_reset_requires_user(self):
        with pytest.raises(ValidationError):
            AdminResetRequest(user_id="")


class TestAutomationSchemas:
    """Tests for automation schemas."""

    def test_activate_valid(self):
        schema = ActivateRequest(content_id="abc", nb_comments_before=2, nb_comments_after=3)
        assert schema.nb_comments_before == 2

    @pytest.mark.parametrize("value", [6, -1, 1.5, "2", True])
    def test_activate_rejects_bad_counts(self, value):
        with pytest.raises(ValidationError):
            ActivateRequest(content_id="abc", nb_comments_before=value, nb_comments_after=0)

    def test_log_comment_type(self):
        with pytest.raises(ValidationError):
            AutoCommentLogRequest(content_id="abc", user_id="uid", platform="linkedin", comment_type="during")

    def test_log_defaults(self):
        schema = AutoCommentLogRequest(content_id="abc", user_id="uid", platform="linkedin", comment_type="after")
        assert schema.success is True
        assert schema.batch_complete is False


class TestContentSchemas:
    """Tests for generation schemas."""

    def test_refine_defaults_to_french(self):
        schema = RefineRequest(content="texte", instruction="plus court")
        assert schema.language == "fr"

    def test_refine_empty_content(self):
        with pytest.raises(ValidationError):
            RefineRequest(content="", instruction="plus court")

    @pytest.mark.parametrize("nb_questions", [2, 16])
    def test_quiz_question_bounds(self, nb_questions):
        with pytest.raises(ValidationError):
            QuizGenerateRequest(objective="leads", target="coachs", nb_questions=nb_questions)
