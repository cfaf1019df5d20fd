"""Explicit transition tables for the workflow entities.

Each machine maps ``(state, action)`` to the next state. Anything missing from
the table is rejected by :func:`transition`, so endpoints never compare status
strings themselves.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Tuple

from campushire.models.mongodb_models import (
    ApplicantStatus,
    ConnectionStatus,
    ReferralStatus,
    SpamReportStatus,
)


class InvalidTransition(Exception):
    def __init__(self, machine: str, state: str, action: str):
        self.machine = machine
        self.state = state
        self.action = action
        super().__init__(f"Cannot {action} a {machine} that is {state}")


@dataclass(frozen=True)
class StateMachine:
    name: str
    transitions: Dict[Tuple[str, str], str] = field(default_factory=dict)

    def allowed_actions(self, state) -> Iterable[str]:
        state = getattr(state, "value", state)
        return [action for (source, action) in self.transitions if source == state]

    def is_terminal(self, state) -> bool:
        return not self.allowed_actions(state)


def transition(machine: StateMachine, state, action: str) -> str:
    """Return the next state or raise InvalidTransition"""
    state = getattr(state, "value", state)
    try:
        return machine.transitions[(state, action)]
    except KeyError:
        raise InvalidTransition(machine.name, state, action)


CONNECTION_FSM = StateMachine(
    name="connection request",
    transitions={
        (ConnectionStatus.PENDING.value, "approve"): ConnectionStatus.APPROVED.value,
        (ConnectionStatus.PENDING.value, "reject"): ConnectionStatus.REJECTED.value,
    },
)

REFERRAL_FSM = StateMachine(
    name="referral",
    transitions={
        (ReferralStatus.PENDING.value, "approve"): ReferralStatus.APPROVED.value,
        (ReferralStatus.PENDING.value, "reject"): ReferralStatus.REJECTED.value,
        (ReferralStatus.PENDING.value, "delete"): ReferralStatus.PENDING.value,
    },
)

SPAM_REPORT_FSM = StateMachine(
    name="spam report",
    transitions={
        (SpamReportStatus.PENDING.value, "investigate"): SpamReportStatus.INVESTIGATING.value,
        (SpamReportStatus.PENDING.value, "resolve"): SpamReportStatus.RESOLVED.value,
        (SpamReportStatus.PENDING.value, "dismiss"): SpamReportStatus.DISMISSED.value,
        (SpamReportStatus.INVESTIGATING.value, "resolve"): SpamReportStatus.RESOLVED.value,
        (SpamReportStatus.INVESTIGATING.value, "dismiss"): SpamReportStatus.DISMISSED.value,
    },
)

# Recruiters may move an applicant between any two statuses
APPLICANT_FSM = StateMachine(
    name="application",
    transitions={
        (source.value, f"set_{target.value}"): target.value
        for source in ApplicantStatus
        for target in ApplicantStatus
    },
)
