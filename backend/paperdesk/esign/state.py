"""Lifecycle of an endorsement request.

    pending  --accept-->  accepted  --sign-->  signed
    pending  --reject-->  rejected
    pending  --cancel-->  cancelled
    accepted --cancel-->  cancelled

``rejected``, ``cancelled`` and ``signed`` are terminal. ``sign`` is only
fired by the endorsement applier, never directly by a user. This module is
pure: it decides whether a transition is allowed and where it leads; the
service commits it.
"""

import enum
from typing import Optional

from paperdesk.auth.models import User
from paperdesk.common.errors import AuthorizationError, InvalidTransitionError
from paperdesk.esign.models import EndorsementRequest, EndorsementStatus


class EndorsementEvent(str, enum.Enum):
    accept = "accept"
    reject = "reject"
    cancel = "cancel"
    sign = "sign"


CREATED_ACTION = "CREATED"

AUDIT_ACTIONS: dict[EndorsementEvent, str] = {
    EndorsementEvent.accept: "ACCEPTED",
    EndorsementEvent.reject: "REJECTED",
    EndorsementEvent.cancel: "CANCELLED",
    EndorsementEvent.sign: "SIGNED",
}

TRANSITIONS: dict[tuple[EndorsementStatus, EndorsementEvent], EndorsementStatus] = {
    (EndorsementStatus.pending, EndorsementEvent.accept): EndorsementStatus.accepted,
    (EndorsementStatus.pending, EndorsementEvent.reject): EndorsementStatus.rejected,
    (EndorsementStatus.pending, EndorsementEvent.cancel): EndorsementStatus.cancelled,
    (EndorsementStatus.accepted, EndorsementEvent.cancel): EndorsementStatus.cancelled,
    (EndorsementStatus.accepted, EndorsementEvent.sign): EndorsementStatus.signed,
}

TERMINAL_STATES = frozenset({EndorsementStatus.rejected, EndorsementStatus.cancelled, EndorsementStatus.signed})

# Target statuses a user may ask for, and the event each one fires.
USER_EVENTS: dict[EndorsementStatus, EndorsementEvent] = {
    EndorsementStatus.accepted: EndorsementEvent.accept,
    EndorsementStatus.rejected: EndorsementEvent.reject,
    EndorsementStatus.cancelled: EndorsementEvent.cancel,
}


def check_guard(request: EndorsementRequest, event: EndorsementEvent, actor: Optional[User]) -> None:
    if event == EndorsementEvent.sign:
        return
    if actor is None:
        raise AuthorizationError("Authentication required")
    if event == EndorsementEvent.cancel:
        if request.requester_id != actor.id:
            raise AuthorizationError("Unauthorized to cancel")
    elif not actor.is_authority:
        raise AuthorizationError("Unauthorized signatory")


def next_status(current: EndorsementStatus, event: EndorsementEvent) -> EndorsementStatus:
    target = TRANSITIONS.get((current, event))
    if target is None:
        if current in TERMINAL_STATES:
            raise InvalidTransitionError(f"Request is already {current.value}")
        raise InvalidTransitionError(f"Cannot {event.value} a {current.value} request")
    return target


def plan_transition(
    request: EndorsementRequest, event: EndorsementEvent, actor: Optional[User]
) -> EndorsementStatus:
    """Validate ``event`` against ``request`` and return the resulting status.

    Authorization is checked before the transition table so a caller without
    the right role learns nothing about the request's current state.
    """
    check_guard(request, event, actor)
    return next_status(request.status, event)
