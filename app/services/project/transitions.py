"""
Project status machine.

Every status change goes through ``apply_transition`` so illegal moves
raise InvalidStateTransitionError instead of silently corrupting state.
"""

from app.models.enums import ProjectStatus as S
from app.models.project import Project
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import InvalidStateTransitionError


ALLOWED_TRANSITIONS: dict[S, frozenset[S]] = {
    S.DRAFT: frozenset({S.SUBMITTED, S.CANCELLED}),
    S.SUBMITTED: frozenset({S.ANALYZING, S.QUOTED, S.CANCELLED}),
    S.ANALYZING: frozenset({S.QUOTED, S.CANCELLED}),
    # Back to analyzing when the quote expires or is declined
    S.QUOTED: frozenset({S.PAYMENT_PENDING, S.ANALYZING, S.QUOTED, S.CANCELLED}),
    S.PAYMENT_PENDING: frozenset({S.PAID, S.CANCELLED}),
    S.PAID: frozenset({S.ASSIGNING, S.ASSIGNED, S.CANCELLED, S.REFUNDED}),
    S.ASSIGNING: frozenset({S.ASSIGNED, S.CANCELLED, S.REFUNDED}),
    S.ASSIGNED: frozenset({S.IN_PROGRESS, S.ASSIGNED, S.CANCELLED, S.REFUNDED}),
    S.IN_PROGRESS: frozenset({S.SUBMITTED_FOR_QC, S.CANCELLED, S.REFUNDED}),
    S.SUBMITTED_FOR_QC: frozenset({S.QC_IN_PROGRESS, S.QC_APPROVED, S.QC_REJECTED}),
    S.QC_IN_PROGRESS: frozenset({S.QC_APPROVED, S.QC_REJECTED}),
    S.QC_APPROVED: frozenset({S.DELIVERED}),
    S.QC_REJECTED: frozenset({S.IN_PROGRESS, S.DELIVERED}),
    S.DELIVERED: frozenset({S.COMPLETED, S.REVISION_REQUESTED, S.AUTO_APPROVED}),
    S.REVISION_REQUESTED: frozenset({S.IN_REVISION}),
    S.IN_REVISION: frozenset({S.SUBMITTED_FOR_QC}),
    S.COMPLETED: frozenset(),
    S.AUTO_APPROVED: frozenset(),
    S.CANCELLED: frozenset(),
    S.REFUNDED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if not targets)

# Money has been collected: cancelling from here refunds the client
PAID_STATUSES = frozenset({S.PAID, S.ASSIGNING, S.ASSIGNED, S.IN_PROGRESS})


def can_transition(current: S | str, target: S | str) -> bool:
    """
    Examples:
        >>> can_transition("draft", "submitted")
        True
        >>> can_transition("completed", "in_progress")
        False
    """
    return S(target) in ALLOWED_TRANSITIONS[S(current)]


def apply_transition(project: Project, target: S) -> Project:
    """
    Move a project to ``target`` or raise.

    Raises:
        InvalidStateTransitionError: Move not allowed from current status
    """
    if not can_transition(project.status, target):
        raise InvalidStateTransitionError(project.status, target.value)
    project.status = target.value
    project.status_changed_at = utc_now()
    return project
