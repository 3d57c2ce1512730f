"""
Tow request lifecycle.

pending -> dispatched -> en_route -> arrived -> towing -> completed, with a
jump to cancelled from any non-terminal state. Each edge names the operation
allowed to take it, so a plain status update cannot skip assignment or
completion.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from app.models.tow_request import TowStatus

ASSIGN = "assign"
STATUS_UPDATE = "status_update"
COMPLETE = "complete"
CANCEL = "cancel"

TERMINAL_STATUSES = frozenset({TowStatus.COMPLETED, TowStatus.CANCELLED})

TRANSITIONS: dict[tuple[TowStatus, TowStatus], str] = {
    (TowStatus.PENDING, TowStatus.DISPATCHED): ASSIGN,
    (TowStatus.DISPATCHED, TowStatus.EN_ROUTE): STATUS_UPDATE,
    (TowStatus.EN_ROUTE, TowStatus.ARRIVED): STATUS_UPDATE,
    (TowStatus.ARRIVED, TowStatus.TOWING): STATUS_UPDATE,
    (TowStatus.TOWING, TowStatus.COMPLETED): COMPLETE,
}


@dataclass(frozen=True)
class Accepted:
    current: TowStatus
    new_status: TowStatus


@dataclass(frozen=True)
class Rejected:
    current: TowStatus
    attempted: TowStatus
    reason: str


TransitionResult = Union[Accepted, Rejected]


def trigger_for(current: TowStatus, target: TowStatus) -> str | None:
    if target == TowStatus.CANCELLED and current not in TERMINAL_STATUSES:
        return CANCEL
    return TRANSITIONS.get((current, target))


def transition(current: TowStatus, target: TowStatus, trigger: str = STATUS_UPDATE) -> TransitionResult:
    """Decide whether ``trigger`` may move a request from ``current`` to ``target``."""
    current = TowStatus(current)
    target = TowStatus(target)

    if current in TERMINAL_STATUSES:
        return Rejected(current, target, f"request is already {current.value}")

    expected = trigger_for(current, target)
    if expected is None:
        return Rejected(current, target, f"{current.value} -> {target.value} is not a valid transition")

    # a status update may also cancel
    if expected != trigger and not (expected == CANCEL and trigger == STATUS_UPDATE):
        return Rejected(current, target, f"{current.value} -> {target.value} must go through {expected}")

    return Accepted(current, target)


def next_statuses(current: TowStatus) -> list[TowStatus]:
    """Statuses reachable in one step, in lifecycle order."""
    current = TowStatus(current)
    return [s for s in TowStatus if trigger_for(current, s) is not None]
