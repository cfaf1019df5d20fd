import pytest

from campushire.models.mongodb_models import ConnectionStatus, ReferralStatus, SpamReportStatus
from campushire.services.state_machines import (
    APPLICANT_FSM,
    CONNECTION_FSM,
    REFERRAL_FSM,
    SPAM_REPORT_FSM,
    InvalidTransition,
    transition,
)


class TestStateMachines:

    def test_connection_approve(self):
        assert transition(CONNECTION_FSM, ConnectionStatus.PENDING, "approve") == "approved"

    @pytest.mark.parametrize("state", [ConnectionStatus.APPROVED, ConnectionStatus.REJECTED])
    def test_connection_decisions_are_final(self, state):
        assert CONNECTION_FSM.is_terminal(state)
        with pytest.raises(InvalidTransition):
            transition(CONNECTION_FSM, state, "reject")

    def test_referral_delete_only_while_pending(self):
        assert transition(REFERRAL_FSM, "pending", "delete") == "pending"
        with pytest.raises(InvalidTransition):
            transition(REFERRAL_FSM, ReferralStatus.APPROVED, "delete")

    def test_spam_report_workflow(self):
        state = transition(SPAM_REPORT_FSM, SpamReportStatus.PENDING, "investigate")
        assert state == "investigating"
        assert transition(SPAM_REPORT_FSM, state, "dismiss") == "dismissed"

    @pytest.mark.parametrize("state", [SpamReportStatus.RESOLVED, SpamReportStatus.DISMISSED])
    @pytest.mark.parametrize("action", ["investigate", "resolve", "dismiss"])
    def test_closed_spam_reports_reject_everything(self, state, action):
        with pytest.raises(InvalidTransition):
            transition(SPAM_REPORT_FSM, state, action)

    def test_applicant_status_is_free(self):
        assert transition(APPLICANT_FSM, "hired", "set_applied") == "applied"
        assert sorted(APPLICANT_FSM.allowed_actions("rejected")) == [
            "set_applied", "set_hired", "set_rejected", "set_shortlisted",
        ]
