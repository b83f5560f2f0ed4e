# Overview: Shared status-transition checks used by every workflow service.

"""
Workflow Transitions

Each workflow module declares its transition table as data:

    ORDER_TRANSITIONS = {
        "Requested": ("Approved", "Rejected"),
        "Approved": ("Dispatched",),
    }

States missing from the table are terminal. Transitions only move forward;
no table contains an edge back to an earlier state.

The checks here never touch the database, so a rejected transition leaves
the row exactly as it was.
"""

from __future__ import annotations

from typing import Mapping, Sequence

Transitions = Mapping[str, Sequence[str]]


def can_transition(transitions: Transitions, from_status: str, to_status: str) -> bool:
    return to_status in transitions.get(from_status, ())


def require_status(target: str, allowed: Sequence[str], error_cls: type[Exception], message: str) -> str:
    """Reject a requested target status that is not one of `allowed`."""
    if target not in allowed:
        raise error_cls(message)
    return target


def require_transition(
    *,
    current: str,
    target: str,
    transitions: Transitions,
    error_cls: type[Exception],
    message: str | None = None,
) -> None:
    """
    Raise error_cls unless current -> target is an edge of `transitions`.

    message defaults to "Cannot change status from X to Y"; callers pass the
    wording their clients already rely on.
    """
    if not can_transition(transitions, current, target):
        raise error_cls(message or f"Cannot change status from {current} to {target}")
