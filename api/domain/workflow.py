# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Report workflow domain logic.

This module holds the report state machine: the transition table, the
mapping from a requested status to an event, the role and ownership guards,
and the pure functions computing the next version of a report. Nothing here
mutates the report it is given.

Checks run in a fixed order: payload validation, then transition legality,
then the actor guard.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from models.entities import ActorContext, Report, StatusChange
from models.enums import ReportEvent, ReportStatus, ACTIVE_STATUSES, TERMINAL_STATUSES
from middleware.error_handler import (
    AuthorizationException,
    InvalidTransitionException,
    ValidationException,
)

TRANSITIONS = {
    (ReportStatus.PENDING_APPROVAL, ReportEvent.APPROVE): ReportStatus.ASSIGNED,
    (ReportStatus.PENDING_APPROVAL, ReportEvent.REJECT): ReportStatus.REJECTED,
    (ReportStatus.ASSIGNED, ReportEvent.START): ReportStatus.IN_PROGRESS,
    (ReportStatus.ASSIGNED, ReportEvent.RESOLVE): ReportStatus.RESOLVED,
    (ReportStatus.IN_PROGRESS, ReportEvent.SUSPEND): ReportStatus.SUSPENDED,
    (ReportStatus.IN_PROGRESS, ReportEvent.RESOLVE): ReportStatus.RESOLVED,
    (ReportStatus.SUSPENDED, ReportEvent.RESUME): ReportStatus.IN_PROGRESS,
}

# Events that only moderators may fire; the others belong to the assignees.
MODERATION_EVENTS = frozenset({ReportEvent.APPROVE, ReportEvent.REJECT})

MAX_REJECTION_REASON_LENGTH = 500


def can_transition(status: str, event: str) -> bool:
    """Check if the transition table has an edge for (status, event)."""
    return (ReportStatus(status), ReportEvent(event)) in TRANSITIONS


def next_status(status: str, event: str) -> ReportStatus:
    """
    Target status for an event.

    Raises:
        InvalidTransitionException: If the edge does not exist
    """
    current = ReportStatus(status)
    requested = ReportEvent(event)
    target = TRANSITIONS.get((current, requested))

    if target is None:
        if current in TERMINAL_STATUSES:
            message = f"Report is {current.value} and cannot change anymore"
        else:
            message = f"Cannot {requested.value} a report in status {current.value}"
        raise InvalidTransitionException(message, current_status=current.value, event=requested.value)

    return target


def event_for_status(current_status: str, new_status: str) -> ReportEvent:
    """
    Map a requested target status to the event that reaches it.

    ``In Progress`` means ``resume`` from ``Suspended`` and ``start`` from
    anywhere else. ``Pending Approval`` is never a target.

    Raises:
        InvalidTransitionException: If no event leads to the requested status
    """
    current = ReportStatus(current_status)
    target = ReportStatus(new_status)

    if target == ReportStatus.ASSIGNED:
        return ReportEvent.APPROVE
    if target == ReportStatus.REJECTED:
        return ReportEvent.REJECT
    if target == ReportStatus.IN_PROGRESS:
        return ReportEvent.RESUME if current == ReportStatus.SUSPENDED else ReportEvent.START
    if target == ReportStatus.SUSPENDED:
        return ReportEvent.SUSPEND
    if target == ReportStatus.RESOLVED:
        return ReportEvent.RESOLVE

    raise InvalidTransitionException(
        f"Cannot move a report from {current.value} to {target.value}",
        current_status=current.value
    )


def available_events(report: Report, actor: ActorContext) -> list:
    """Events the actor could fire on the report right now, in table order."""
    events = []
    for (status, event) in TRANSITIONS:
        if status.value == report.status and is_actor_allowed(report, event, actor):
            events.append(event)

    if can_assign_external(report, actor):
        events.append(ReportEvent.ASSIGN_EXTERNAL)

    return events


def is_actor_allowed(report: Report, event: str, actor: ActorContext) -> bool:
    """Role and ownership guard for a state machine event."""
    event = ReportEvent(event)

    if event in MODERATION_EVENTS:
        return actor.is_moderator()
    if event == ReportEvent.ASSIGN_EXTERNAL:
        return report.internal_assignee_id == actor.user_id

    return report.is_assignee(actor.user_id)


def can_assign_external(report: Report, actor: ActorContext) -> bool:
    return (
        ReportStatus(report.status) in ACTIVE_STATUSES
        and report.internal_assignee_id == actor.user_id
    )


def check_event(report: Report, event: str, actor: ActorContext) -> ReportStatus:
    """
    Check that the actor may fire the event on the report in its current status.

    Returns:
        Target status of the transition

    Raises:
        InvalidTransitionException: No edge for (status, event)
        AuthorizationException: Actor may not fire the event
    """
    event = ReportEvent(event)
    target = next_status(report.status, event)

    if not is_actor_allowed(report, event, actor):
        if event in MODERATION_EVENTS:
            raise AuthorizationException(
                f"Only administrators and public relations officers can {event.value} reports"
            )
        raise AuthorizationException(f"Only the assignees of this report can {event.value} it")

    return target


def check_external_assignment(report: Report, actor: ActorContext) -> None:
    """
    Check that the actor may delegate the report to an external maintainer.

    Raises:
        InvalidTransitionException: Report is pending or terminal
        AuthorizationException: Actor is not the internal assignee
    """
    current = ReportStatus(report.status)
    if current not in ACTIVE_STATUSES:
        raise InvalidTransitionException(
            f"Cannot assign an external maintainer to a report in status {current.value}",
            current_status=current.value,
            event=ReportEvent.ASSIGN_EXTERNAL.value
        )

    if report.internal_assignee_id != actor.user_id:
        raise AuthorizationException("Only the internal assignee can delegate this report")


def validate_rejection_reason(reason: Optional[str]) -> str:
    """
    Check and normalize a rejection reason.

    Raises:
        ValidationException: If the reason is missing, blank or too long
    """
    if reason is None or not reason.strip():
        raise ValidationException(
            "A rejection reason is required",
            [{"field": "rejectionReason", "message": "Field cannot be empty"}]
        )

    reason = reason.strip()
    if len(reason) > MAX_REJECTION_REASON_LENGTH:
        raise ValidationException(
            "Rejection reason is too long",
            [{"field": "rejectionReason",
              "message": f"Must be at most {MAX_REJECTION_REASON_LENGTH} characters"}]
        )
    return reason


def _rebuild(report: Report, changes: Dict[str, Any], entry: StatusChange, now: datetime) -> Report:
    data = report.model_dump()
    data.update(changes)
    data["status_history"] = [*data.get("status_history", []), entry.model_dump()]
    data["updated_at"] = now
    data["version"] = report.version + 1
    return Report.model_validate(data)


def apply_transition(
    report: Report,
    event: str,
    actor: ActorContext,
    rejection_reason: Optional[str] = None,
    internal_assignee_id: Optional[str] = None,
    now: Optional[datetime] = None
) -> Report:
    """
    Compute the report that results from firing an event.

    Args:
        report: Current report, left untouched
        event: Event to fire
        actor: Authenticated actor
        rejection_reason: Required for ``reject``
        internal_assignee_id: Routed staff member for ``approve``; the actor
            becomes the assignee when omitted
        now: Timestamp for the change, defaults to the current UTC time

    Returns:
        New Report with the changed status, a history entry and a bumped version

    Raises:
        ValidationException: Missing or invalid payload
        InvalidTransitionException: No edge for (status, event)
        AuthorizationException: Actor may not fire the event
    """
    event = ReportEvent(event)
    if event == ReportEvent.ASSIGN_EXTERNAL:
        raise ValueError("Use apply_external_assignment for assign-external")

    reason = validate_rejection_reason(rejection_reason) if event == ReportEvent.REJECT else None

    target = check_event(report, event, actor)

    changes: Dict[str, Any] = {"status": target.value}
    note = None

    if event == ReportEvent.APPROVE:
        changes["internal_assignee_id"] = internal_assignee_id or actor.user_id
    elif event == ReportEvent.REJECT:
        changes["rejection_reason"] = reason
        note = reason

    now = now or datetime.utcnow()
    entry = StatusChange(
        from_status=report.status,
        to_status=target,
        event=event.value,
        changed_by=actor.user_id,
        at=now,
        note=note
    )
    return _rebuild(report, changes, entry, now)


def apply_external_assignment(
    report: Report,
    external_assignee_id: str,
    actor: ActorContext,
    now: Optional[datetime] = None
) -> Report:
    """
    Compute the report delegated to an external maintainer.

    The status does not change and the last assignment wins. Only the
    internal assignee may delegate, and only while the report is active.

    Raises:
        ValidationException: Missing maintainer id
        InvalidTransitionException: Report is pending or terminal
        AuthorizationException: Actor is not the internal assignee
    """
    if not external_assignee_id:
        raise ValidationException(
            "An external maintainer is required",
            [{"field": "externalAssigneeId", "message": "Field is required"}]
        )

    check_external_assignment(report, actor)

    current = ReportStatus(report.status)
    now = now or datetime.utcnow()
    entry = StatusChange(
        from_status=current,
        to_status=current,
        event=ReportEvent.ASSIGN_EXTERNAL.value,
        changed_by=actor.user_id,
        at=now,
        note=external_assignee_id
    )
    return _rebuild(report, {"external_assignee_id": external_assignee_id}, entry, now)
