"""Spam score accumulation and auto-block policy.

Every change to ``User.spam_score`` goes through :class:`SpamScoreService`.
Each source has its own ceiling in :class:`SpamScorePolicy`; a ceiling only
limits how far that source can raise a score and never pulls down a score
another source already raised. Every change is appended to the
``spam_score_events`` ledger.
"""

from typing import Optional

from beanie import PydanticObjectId
from loguru import logger
from pydantic import BaseModel

from campushire.models.mongodb_models import ScoreSource, SpamScoreEvent, User


class ScoreChange(BaseModel):
    previous_score: int
    new_score: int
    applied_delta: int
    blocked: bool
    auto_blocked: bool = False


class SpamScorePolicy:
    """Bounds and thresholds for every score mutation path"""

    MIN_SCORE = 0
    MAX_SCORE = 100
    AUTO_BLOCK_THRESHOLD = 50
    MANUAL_RANGE = (0, 10)
    BLOCK_PENALTY = 2
    UNBLOCK_CREDIT = 1

    def __init__(self):
        self.caps = {
            ScoreSource.CONTENT: 10,
            ScoreSource.PROFILE: self.MAX_SCORE,
            ScoreSource.MANUAL: self.MANUAL_RANGE[1],
            ScoreSource.BLOCK_TOGGLE: 10,
        }
        self.auto_block = {
            ScoreSource.CONTENT: False,
            ScoreSource.PROFILE: True,
            ScoreSource.MANUAL: False,
            ScoreSource.BLOCK_TOGGLE: False,
        }

    def clamp(self, score: int) -> int:
        return max(self.MIN_SCORE, min(score, self.MAX_SCORE))

    def apply_delta(self, current: int, delta: int, source: ScoreSource) -> int:
        """New score after adding delta on the given path"""
        current = self.clamp(current)
        if delta >= 0:
            capped = min(current + delta, self.caps[source])
            return self.clamp(max(current, capped))
        return self.clamp(current + delta)

    def should_auto_block(self, score: int, source: ScoreSource) -> bool:
        return self.auto_block[source] and score >= self.AUTO_BLOCK_THRESHOLD

    def validate_manual_score(self, value: int) -> int:
        low, high = self.MANUAL_RANGE
        if value < low or value > high:
            raise ValueError(f"Spam score must be between {low} and {high}")
        return value


class SpamScoreService:
    """Applies score changes to users and records them in the ledger"""

    def __init__(self, policy: Optional[SpamScorePolicy] = None):
        self.policy = policy or SpamScorePolicy()

    async def _record(
        self,
        user: User,
        source: ScoreSource,
        reason: str,
        requested_delta: int,
        previous: int,
        auto_blocked: bool,
        actor_id: Optional[PydanticObjectId],
    ) -> ScoreChange:
        change = ScoreChange(
            previous_score=previous,
            new_score=user.spam_score,
            applied_delta=user.spam_score - previous,
            blocked=user.is_blocked,
            auto_blocked=auto_blocked,
        )
        await user.save()
        await SpamScoreEvent(
            user_id=user.id,
            source=source,
            reason=reason,
            requested_delta=requested_delta,
            applied_delta=change.applied_delta,
            previous_score=previous,
            new_score=change.new_score,
            blocked=change.blocked,
            actor_id=actor_id,
        ).insert()
        logger.info(
            f"Spam score for user {user.id} {previous} -> {change.new_score} "
            f"({source.value}: {reason}; blocked={change.blocked})"
        )
        return change

    async def adjust(
        self,
        user: User,
        delta: int,
        source: ScoreSource,
        reason: str,
        actor_id: Optional[PydanticObjectId] = None,
    ) -> ScoreChange:
        """Add a delta on the given path, auto-blocking where the policy says so"""
        previous = user.spam_score
        user.spam_score = self.policy.apply_delta(previous, delta, source)

        auto_blocked = False
        if self.policy.should_auto_block(user.spam_score, source) and not user.is_blocked:
            user.is_blocked = True
            auto_blocked = True
            logger.warning(f"User {user.id} auto-blocked at spam score {user.spam_score}")

        return await self._record(user, source, reason, delta, previous, auto_blocked, actor_id)

    async def set_manual(
        self,
        user: User,
        value: int,
        actor_id: Optional[PydanticObjectId] = None,
        reason: Optional[str] = None,
    ) -> ScoreChange:
        """Admin override to an absolute value inside the manual range"""
        self.policy.validate_manual_score(value)
        previous = user.spam_score
        user.spam_score = value
        return await self._record(
            user, ScoreSource.MANUAL, reason or "Manual update", value - previous, previous, False, actor_id
        )

    async def toggle_block(
        self,
        user: User,
        is_blocked: bool,
        actor_id: Optional[PydanticObjectId] = None,
        reason: Optional[str] = None,
    ) -> ScoreChange:
        """Block adds a penalty, unblock gives a small credit back"""
        previous = user.spam_score
        user.is_blocked = is_blocked
        delta = self.policy.BLOCK_PENALTY if is_blocked else -self.policy.UNBLOCK_CREDIT
        user.spam_score = self.policy.apply_delta(previous, delta, ScoreSource.BLOCK_TOGGLE)
        default_reason = "Blocked by admin" if is_blocked else "Unblocked by admin"
        return await self._record(
            user, ScoreSource.BLOCK_TOGGLE, reason or default_reason, delta, previous, False, actor_id
        )


spam_score_service = SpamScoreService()
