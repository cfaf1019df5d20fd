"""Tests for the spam score policy and the ledger-backed service"""

import pytest

from campushire.models.mongodb_models import ScoreSource, SpamScoreEvent, UserRole
from campushire.services.spam_score import SpamScorePolicy, spam_score_service


class TestSpamScorePolicy:

    def setup_method(self):
        self.policy = SpamScorePolicy()

    def test_content_path_is_capped_at_ten(self):
        assert self.policy.apply_delta(8, 5, ScoreSource.CONTENT) == 10

    def test_lower_cap_never_lowers_an_existing_score(self):
        assert self.policy.apply_delta(40, 3, ScoreSource.CONTENT) == 40

    def test_profile_path_is_bounded(self):
        score = 0
        for _ in range(30):
            score = self.policy.apply_delta(score, 7, ScoreSource.PROFILE)
            assert 0 <= score <= 100
        assert score == 100

    def test_negative_delta_floors_at_zero(self):
        assert self.policy.apply_delta(1, -5, ScoreSource.BLOCK_TOGGLE) == 0

    def test_auto_block_threshold(self):
        assert self.policy.should_auto_block(50, ScoreSource.PROFILE) is True
        assert self.policy.should_auto_block(49, ScoreSource.PROFILE) is False
        assert self.policy.should_auto_block(80, ScoreSource.CONTENT) is False

    @pytest.mark.parametrize("value", [-1, 11])
    def test_manual_score_out_of_range(self, value):
        with pytest.raises(ValueError, match="between 0 and 10"):
            self.policy.validate_manual_score(value)


class TestSpamScoreService:

    async def test_profile_adjustment_auto_blocks_at_fifty(self, make_user):
        user = await make_user(UserRole.STUDENT, spam_score=45)

        change = await spam_score_service.adjust(user, 5, ScoreSource.PROFILE, "links")

        assert change.new_score == 50
        assert change.auto_blocked is True
        assert user.is_blocked is True

    async def test_profile_adjustment_below_threshold_does_not_block(self, make_user):
        user = await make_user(UserRole.STUDENT, spam_score=45)

        change = await spam_score_service.adjust(user, 4, ScoreSource.PROFILE, "links")

        assert change.new_score == 49
        assert user.is_blocked is False

    async def test_every_change_is_recorded(self, make_user, admin):
        user = await make_user(UserRole.ALUMNI)

        await spam_score_service.adjust(user, 3, ScoreSource.CONTENT, "keywords")
        await spam_score_service.set_manual(user, 7, actor_id=admin.id)
        await spam_score_service.toggle_block(user, True, actor_id=admin.id)

        events = await SpamScoreEvent.find(SpamScoreEvent.user_id == user.id).to_list()
        assert [e.source for e in events] == [ScoreSource.CONTENT, ScoreSource.MANUAL, ScoreSource.BLOCK_TOGGLE]
        assert [e.new_score for e in events] == [3, 7, 9]
        assert events[-1].actor_id == admin.id

    async def test_unblock_gives_credit_back(self, make_user):
        user = await make_user(UserRole.STUDENT, spam_score=4, is_blocked=True)

        change = await spam_score_service.toggle_block(user, False)

        assert change.new_score == 3
        assert user.is_blocked is False

    async def test_manual_set_rejects_out_of_range(self, make_user):
        user = await make_user(UserRole.STUDENT, spam_score=2)

        with pytest.raises(ValueError):
            await spam_score_service.set_manual(user, 42)
        assert user.spam_score == 2
