import logging
from datetime import datetime
from typing import Callable

from app.core.exceptions import AuthenticationRequired, QuotaExceeded
from app.models.quota import GlobalLimits, QuotaDecision, QuotaState
from app.repository.settings_repository import SettingsRepository
from app.repository.user_repository import UserRepository

logger = logging.getLogger(__name__)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def is_same_day(a: datetime, b: datetime) -> bool:
    return (a.year, a.month, a.day) == (b.year, b.month, b.day)


def evaluate_quota(state: QuotaState, limits: GlobalLimits, now: datetime) -> QuotaDecision:
    """
    Decide whether one more request may be counted today.

    Pure: returns the decision and the state the user would end up in
    without touching storage.

    Args:
        state: Current counter
        limits: Current global limits
        now: Evaluation time, local server clock

    Returns:
        QuotaDecision
    """
    limit = limits.limit_for(state.plan)
    reset_required = not is_same_day(state.last_request_date, now)
    count = 0 if reset_required else state.daily_requests_count

    if limit == 0:
        next_state = QuotaState(daily_requests_count=count + 1, last_request_date=now, plan=state.plan)
        return QuotaDecision(allowed=True, limit=0, unlimited=True, reset_required=reset_required, state=next_state)

    if count >= limit:
        if reset_required:
            current = QuotaState(daily_requests_count=count, last_request_date=now, plan=state.plan)
        else:
            current = state
        return QuotaDecision(allowed=False, limit=limit, unlimited=False, reset_required=reset_required, state=current)

    next_state = QuotaState(daily_requests_count=count + 1, last_request_date=now, plan=state.plan)
    return QuotaDecision(allowed=True, limit=limit, unlimited=False, reset_required=reset_required, state=next_state)


class QuotaGate:
    """
    Counts one request per verification against the user's daily ceiling.

    The threshold check and the increment are one conditional update in
    MongoDB, so concurrent requests cannot push a user past the limit.
    A count is never refunded when the wrapped verification fails.
    """

    def __init__(
        self,
        user_repository: UserRepository,
        settings_repository: SettingsRepository,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.user_repository = user_repository
        self.settings_repository = settings_repository
        self.clock = clock

    def check_and_consume(self, user_id: str) -> QuotaDecision:
        """
        Count a request for the user or refuse it.

        Args:
            user_id: Authenticated user's id

        Returns:
            QuotaDecision for the allowed request

        Raises:
            AuthenticationRequired: Unknown user
            QuotaExceeded: Daily ceiling already reached
        """
        state = self.user_repository.get_quota_state(user_id)
        if state is None:
            raise AuthenticationRequired("User not found")

        limits = self.settings_repository.get_limits()
        now = self.clock()
        decision = evaluate_quota(state, limits, now)

        if decision.reset_required:
            self.user_repository.reset_daily_count_if_stale(user_id, start_of_day(now), now)

        if not decision.allowed:
            logger.info("Quota exceeded for user %s (%d/%d)", user_id, decision.state.daily_requests_count, decision.limit)
            raise QuotaExceeded(decision.limit, state.plan.value)

        ceiling = None if decision.unlimited else decision.limit
        updated = self.user_repository.try_consume(user_id, ceiling, now)
        if updated is None:
            # Lost the race against a concurrent request for the same user
            logger.info("Quota exceeded for user %s after concurrent update", user_id)
            raise QuotaExceeded(decision.limit, state.plan.value)

        return decision.model_copy(update={"state": updated})

    def snapshot(self, user_id: str) -> QuotaDecision:
        """
        Current quota view without counting anything.

        Raises:
            AuthenticationRequired: Unknown user
        """
        state = self.user_repository.get_quota_state(user_id)
        if state is None:
            raise AuthenticationRequired("User not found")

        limits = self.settings_repository.get_limits()
        now = self.clock()
        limit = limits.limit_for(state.plan)
        count = 0 if not is_same_day(state.last_request_date, now) else state.daily_requests_count
        current = QuotaState(daily_requests_count=count, last_request_date=state.last_request_date, plan=state.plan)
        return QuotaDecision(
            allowed=limit == 0 or count < limit,
            limit=limit,
            unlimited=limit == 0,
            reset_required=count != state.daily_requests_count,
            state=current,
        )
