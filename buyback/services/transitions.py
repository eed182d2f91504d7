"""Status transition guard for scan-triggered status updates.

Policy: the only status-only move is ``Approved -> Completed``. Full edits
through the asset form are not routed through here and may set any status.
"""

from __future__ import annotations

import logging

from ..core.errors import TransitionDeniedError
from ..schemas.asset import BuybackStatus

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[BuybackStatus, frozenset[BuybackStatus]] = {
    BuybackStatus.PENDING: frozenset(),
    BuybackStatus.APPROVED: frozenset({BuybackStatus.COMPLETED}),
    BuybackStatus.IN_PROCESS: frozenset(),
    BuybackStatus.COMPLETED: frozenset(),
}

REASON_NO_OP = "no_op"
REASON_ALREADY_COMPLETED = "already_completed"
REASON_NOT_APPROVED = "not_approved"
REASON_TARGET_NOT_ALLOWED = "target_not_allowed"


def allowed_targets(current: str | BuybackStatus) -> list[BuybackStatus]:
    """Statuses a scan may move ``current`` to (empty when the button is disabled)."""

    targets = ALLOWED_TRANSITIONS[BuybackStatus(current)]
    return [status for status in BuybackStatus if status in targets]


def check_status_transition(current: str | BuybackStatus, target: str | BuybackStatus) -> BuybackStatus:
    """Return the target status or raise ``TransitionDeniedError``."""

    current = BuybackStatus(current)
    target = BuybackStatus(target)

    if target in ALLOWED_TRANSITIONS[current]:
        return target

    if target == current:
        reason = REASON_NO_OP
        message = f'Asset is already "{current.value}"'
    elif current == BuybackStatus.COMPLETED:
        reason = REASON_ALREADY_COMPLETED
        message = "Asset is already Completed"
    elif target == BuybackStatus.COMPLETED:
        reason = REASON_NOT_APPROVED
        message = 'Asset must have "Approved" status before it can be marked as Completed'
    else:
        reason = REASON_TARGET_NOT_ALLOWED
        message = f'Scanned updates can only mark assets as Completed, not "{target.value}"'

    logger.warning(
        "asset.transition_denied",
        extra={"extra_data": {"current": current.value, "target": target.value, "reason": reason}},
    )
    raise TransitionDeniedError(reason, message, current=current.value, target=target.value)
