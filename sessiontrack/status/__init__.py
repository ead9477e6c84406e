"""Enum values and allowed status transitions for every stateful entity."""

USER_TYPES = ("musician", "producer", "studio")

PROJECT_STATUSES = ("draft", "open", "in_progress", "completed", "cancelled")
INVITATION_STATUSES = ("pending", "accepted", "declined", "cancelled")
SESSION_STATUSES = ("scheduled", "in_progress", "completed", "cancelled")
PARTICIPANT_STATUSES = ("invited", "confirmed", "declined", "completed", "no_show")
PAYMENT_STATUSES = ("pending", "completed", "failed", "refunded")
RECURRENCE_PATTERNS = ("daily", "weekly", "monthly")

PROJECT_TRANSITIONS = {
    "draft": {"open", "cancelled"},
    "open": {"in_progress", "cancelled"},
    "in_progress": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}

INVITATION_TRANSITIONS = {
    "pending": {"accepted", "declined", "cancelled"},
    "accepted": set(),
    "declined": set(),
    "cancelled": set(),
}

SESSION_TRANSITIONS = {
    "scheduled": {"in_progress", "cancelled"},
    "in_progress": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}

# Changes of mind (confirmed <-> declined) are further restricted to
# sessions that are still scheduled; see ``check_participant_response``.
PARTICIPANT_TRANSITIONS = {
    "invited": {"confirmed", "declined"},
    "confirmed": {"declined", "completed", "no_show"},
    "declined": {"confirmed"},
    "completed": set(),
    "no_show": set(),
}

PAYMENT_TRANSITIONS = {
    "pending": {"completed", "failed"},
    "completed": {"refunded"},
    "failed": set(),
    "refunded": set(),
}

_TABLES = {
    "project": PROJECT_TRANSITIONS,
    "invitation": INVITATION_TRANSITIONS,
    "session": SESSION_TRANSITIONS,
    "participant": PARTICIPANT_TRANSITIONS,
    "payment": PAYMENT_TRANSITIONS,
}


class InvalidTransition(Exception):
    """Raised when a status change is not allowed from the current state."""

    def __init__(self, kind: str, current: str, target: str):
        self.kind = kind
        self.current = current
        self.target = target
        super().__init__(f"Cannot change {kind} status from '{current}' to '{target}'")


def can_transition(kind: str, current: str, target: str) -> bool:
    return target in _TABLES[kind].get(current, set())


def check_transition(kind: str, current: str, target: str) -> None:
    if not can_transition(kind, current, target):
        raise InvalidTransition(kind, current, target)


def check_participant_response(current: str, target: str, session_status: str) -> None:
    """Validate a musician's own confirm/decline answer for a session."""
    if session_status in ("completed", "cancelled"):
        raise InvalidTransition("participant", current, target)
    if target not in ("confirmed", "declined"):
        raise InvalidTransition("participant", current, target)
    if current in ("confirmed", "declined") and session_status != "scheduled":
        raise InvalidTransition("participant", current, target)
    check_transition("participant", current, target)
