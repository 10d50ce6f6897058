"""Unit tests for the project status machine."""

import pytest

from app.models.enums import ProjectStatus as S
from app.services.project import ALLOWED_TRANSITIONS, apply_transition, can_transition
from app.services.project.transitions import PAID_STATUSES, TERMINAL_STATUSES
from app.utils.exceptions import InvalidStateTransitionError


class TestTransitionMap:
    def test_every_status_has_an_entry(self):
        assert set(ALLOWED_TRANSITIONS) == set(S)

    def test_terminal_statuses(self):
        assert TERMINAL_STATUSES == {S.COMPLETED, S.AUTO_APPROVED, S.CANCELLED, S.REFUNDED}

    def test_refund_only_after_payment(self):
        for status, targets in ALLOWED_TRANSITIONS.items():
            if S.REFUNDED in targets:
                assert status in PAID_STATUSES

    @pytest.mark.parametrize(
        "current, target",
        [
            (S.DRAFT, S.SUBMITTED),
            (S.SUBMITTED, S.ANALYZING),
            (S.ANALYZING, S.QUOTED),
            (S.QUOTED, S.PAYMENT_PENDING),
            (S.QUOTED, S.ANALYZING),
            (S.PAYMENT_PENDING, S.PAID),
            (S.PAID, S.ASSIGNED),
            (S.ASSIGNED, S.IN_PROGRESS),
            (S.IN_PROGRESS, S.SUBMITTED_FOR_QC),
            (S.SUBMITTED_FOR_QC, S.QC_IN_PROGRESS),
            (S.QC_IN_PROGRESS, S.QC_APPROVED),
            (S.QC_APPROVED, S.DELIVERED),
            (S.QC_REJECTED, S.IN_PROGRESS),
            (S.DELIVERED, S.REVISION_REQUESTED),
            (S.REVISION_REQUESTED, S.IN_REVISION),
            (S.IN_REVISION, S.SUBMITTED_FOR_QC),
            (S.DELIVERED, S.COMPLETED),
        ],
    )
    def test_happy_path_moves(self, current, target):
        assert can_transition(current, target) is True

    @pytest.mark.parametrize(
        "current, target",
        [
            (S.DRAFT, S.PAID),
            (S.PAYMENT_PENDING, S.ASSIGNED),
            (S.IN_PROGRESS, S.DELIVERED),
            (S.DELIVERED, S.CANCELLED),
            (S.COMPLETED, S.IN_PROGRESS),
            (S.CANCELLED, S.SUBMITTED),
            (S.DRAFT, S.REFUNDED),
        ],
    )
    def test_illegal_moves(self, current, target):
        assert can_transition(current, target) is False

    def test_accepts_plain_strings(self):
        assert can_transition("draft", "submitted") is True


class TestApplyTransition:
    def test_updates_status_and_timestamp(self, make_project):
        project = make_project(S.DRAFT)

        apply_transition(project, S.SUBMITTED)

        assert project.status == "submitted"
        assert project.status_changed_at is not None

    def test_illegal_move_raises_and_keeps_status(self, make_project):
        project = make_project(S.COMPLETED)

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            apply_transition(project, S.IN_PROGRESS)

        assert exc_info.value.current == "completed"
        assert exc_info.value.target == "in_progress"
        assert exc_info.value.http_status == 409
        assert project.status == "completed"
