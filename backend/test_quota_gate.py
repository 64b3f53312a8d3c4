from datetime import datetime, timedelta

import pytest

from app.core.exceptions import AuthenticationRequired, QuotaExceeded
from app.models.quota import GlobalLimits, GlobalLimitsUpdate, PlanTier, QuotaState
from app.services.quota_service import QuotaGate, evaluate_quota


@pytest.fixture
def limits():
    return GlobalLimits(free_daily_limit=10, premium_daily_limit=0)


class TestEvaluateQuota:
    def test_denied_at_limit_today(self, limits, fixed_now):
        state = QuotaState(daily_requests_count=10, last_request_date=fixed_now - timedelta(hours=1))
        decision = evaluate_quota(state, limits, fixed_now)

        assert not decision.allowed
        assert decision.state.daily_requests_count == 10

    def test_new_day_resets_then_allows(self, limits, fixed_now):
        state = QuotaState(daily_requests_count=10, last_request_date=fixed_now - timedelta(days=1))
        decision = evaluate_quota(state, limits, fixed_now)

        assert decision.allowed
        assert decision.reset_required
        assert decision.state.daily_requests_count == 1
        assert decision.state.last_request_date == fixed_now

    def test_midnight_boundary(self, limits):
        late = datetime(2025, 3, 14, 23, 59, 59)
        early = datetime(2025, 3, 15, 0, 0, 1)
        state = QuotaState(daily_requests_count=10, last_request_date=late)
        assert evaluate_quota(state, limits, early).allowed

    @pytest.mark.parametrize("count", [0, 10, 5000])
    def test_premium_unlimited(self, limits, fixed_now, count):
        state = QuotaState(daily_requests_count=count, last_request_date=fixed_now, plan=PlanTier.YEARLY)
        decision = evaluate_quota(state, limits, fixed_now)

        assert decision.allowed
        assert decision.unlimited
        assert decision.remaining is None

    def test_premium_limit_applies_to_paid_plans(self, fixed_now):
        limits = GlobalLimits(free_daily_limit=10, premium_daily_limit=50)
        state = QuotaState(daily_requests_count=50, last_request_date=fixed_now, plan=PlanTier.MONTHLY)
        assert not evaluate_quota(state, limits, fixed_now).allowed

    def test_free_limit_zero_means_unlimited(self, fixed_now):
        limits = GlobalLimits(free_daily_limit=0, premium_daily_limit=0)
        state = QuotaState(daily_requests_count=999, last_request_date=fixed_now)
        assert evaluate_quota(state, limits, fixed_now).allowed

    def test_remaining(self, limits, fixed_now):
        state = QuotaState(daily_requests_count=3, last_request_date=fixed_now)
        assert evaluate_quota(state, limits, fixed_now).remaining == 6


class TestQuotaGate:
    @pytest.fixture
    def gate(self, user_repository, settings_repository, fixed_now):
        return QuotaGate(user_repository, settings_repository, clock=lambda: fixed_now)

    @pytest.fixture
    def user_id(self, user_repository):
        user = user_repository.create_user("Reader", "reader@example.com", "hash")
        return str(user["_id"])

    def set_counter(self, user_repository, user_id, count, last_request_date, plan=PlanTier.FREE):
        from bson import ObjectId
        user_repository.collection.update_one(
            {"_id": ObjectId(user_id)},
            {"$set": {"daily_requests_count": count, "last_request_date": last_request_date, "plan": plan.value}},
        )

    def test_counts_until_limit(self, gate, user_id, user_repository):
        for expected in range(1, 11):
            decision = gate.check_and_consume(user_id)
            assert decision.state.daily_requests_count == expected

        with pytest.raises(QuotaExceeded) as exc_info:
            gate.check_and_consume(user_id)
        assert exc_info.value.status_code == 403
        assert exc_info.value.code == "QUOTA_EXCEEDED"
        assert user_repository.get_quota_state(user_id).daily_requests_count == 10

    def test_denied_when_full_today(self, gate, user_id, user_repository, fixed_now):
        self.set_counter(user_repository, user_id, 10, fixed_now - timedelta(minutes=5))
        with pytest.raises(QuotaExceeded):
            gate.check_and_consume(user_id)

    def test_allowed_after_day_change(self, gate, user_id, user_repository, fixed_now):
        self.set_counter(user_repository, user_id, 10, fixed_now - timedelta(days=1))

        decision = gate.check_and_consume(user_id)

        assert decision.allowed
        state = user_repository.get_quota_state(user_id)
        assert state.daily_requests_count == 1
        assert state.last_request_date.date() == fixed_now.date()

    def test_premium_zero_limit_never_denies(self, gate, user_id, user_repository, fixed_now):
        self.set_counter(user_repository, user_id, 500, fixed_now, plan=PlanTier.MONTHLY)
        decision = gate.check_and_consume(user_id)

        assert decision.unlimited
        assert user_repository.get_quota_state(user_id).daily_requests_count == 501

    def test_limits_read_fresh(self, gate, user_id, user_repository, settings_repository, fixed_now):
        self.set_counter(user_repository, user_id, 3, fixed_now)
        settings_repository.update_limits(GlobalLimitsUpdate(free_daily_limit=3))
        with pytest.raises(QuotaExceeded):
            gate.check_and_consume(user_id)

        settings_repository.update_limits(GlobalLimitsUpdate(free_daily_limit=4))
        assert gate.check_and_consume(user_id).state.daily_requests_count == 4

    def test_unknown_user(self, gate):
        with pytest.raises(AuthenticationRequired):
            gate.check_and_consume("000000000000000000000000")

    def test_never_counted_user_ignores_created_at(self, gate, user_repository, fixed_now):
        user = user_repository.create_user("New", "new@example.com", "hash")
        # created_at is stored in UTC and may fall on another local day than the gate clock
        user_repository.collection.update_one(
            {"_id": user["_id"]}, {"$set": {"created_at": fixed_now + timedelta(hours=10)}}
        )
        user_id = str(user["_id"])

        assert user_repository.get_quota_state(user_id).last_request_date == datetime.min
        assert gate.snapshot(user_id).remaining == 10

        decision = gate.check_and_consume(user_id)
        assert decision.state.daily_requests_count == 1
        assert user_repository.get_quota_state(user_id).last_request_date == fixed_now

    def test_snapshot_does_not_count(self, gate, user_id, user_repository, fixed_now):
        self.set_counter(user_repository, user_id, 4, fixed_now)
        snapshot = gate.snapshot(user_id)

        assert snapshot.state.daily_requests_count == 4
        assert snapshot.remaining == 6
        assert user_repository.get_quota_state(user_id).daily_requests_count == 4


class TestAtomicIncrement:
    def test_ceiling_in_filter(self, user_repository, fixed_now):
        user = user_repository.create_user("Reader", "reader@example.com", "hash")
        user_id = str(user["_id"])
        user_repository.collection.update_one({"_id": user["_id"]}, {"$set": {"daily_requests_count": 9}})

        assert user_repository.try_consume(user_id, 10, fixed_now).daily_requests_count == 10
        # A concurrent request that evaluated before the increment above loses
        assert user_repository.try_consume(user_id, 10, fixed_now) is None

    def test_reset_only_once_per_day(self, user_repository, fixed_now):
        user = user_repository.create_user("Reader", "reader@example.com", "hash")
        user_id = str(user["_id"])
        user_repository.collection.update_one(
            {"_id": user["_id"]},
            {"$set": {"daily_requests_count": 7, "last_request_date": fixed_now - timedelta(days=2)}},
        )
        day_start = fixed_now.replace(hour=0, minute=0, second=0, microsecond=0)

        assert user_repository.reset_daily_count_if_stale(user_id, day_start, fixed_now)
        user_repository.try_consume(user_id, 10, fixed_now)
        assert not user_repository.reset_daily_count_if_stale(user_id, day_start, fixed_now)
        assert user_repository.get_quota_state(user_id).daily_requests_count == 1


class TestSettingsRepository:
    def test_defaults_inserted_on_first_read(self, settings_repository):
        limits = settings_repository.get_limits()
        assert limits.free_daily_limit == 10
        assert limits.premium_daily_limit == 0
        assert settings_repository.collection.count_documents({}) == 1

    def test_partial_update(self, settings_repository):
        settings_repository.update_limits(GlobalLimitsUpdate(premium_daily_limit=100))
        limits = settings_repository.get_limits()
        assert limits.free_daily_limit == 10
        assert limits.premium_daily_limit == 100
