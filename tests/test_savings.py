"""Tests for the savings goal projection engine."""

import datetime as dt
from decimal import Decimal

import pytest

from conftest import TODAY, transaction_data
from ledger.analytics import net_savings, project_completion
from ledger.errors import EntityNotFoundError
from ledger.models.entities import SavingsGoal, TransactionType

INCOME = TransactionType.INCOME


def goal(target="1000", current="0", target_date=None) -> SavingsGoal:
    return SavingsGoal(
        id="g1",
        name="Trip",
        target_amount=Decimal(target),
        current_amount=Decimal(current),
        start_date=dt.date(2024, 1, 1),
        target_date=target_date,
    )


class TestProjectCompletion:

    def test_positive_rate(self):
        """300 saved over 3 months -> 100/month -> 10 months for 1000."""
        prediction = project_completion(goal(), Decimal("300"), TODAY)
        assert prediction.monthly_savings == Decimal("100")
        assert prediction.months_remaining == 10
        assert prediction.predicted_date == dt.date(2025, 4, 15)
        assert prediction.is_on_track is None

    def test_rounds_months_up(self):
        prediction = project_completion(goal(target="1001"), Decimal("300"), TODAY)
        assert prediction.months_remaining == 11

    @pytest.mark.parametrize("window_net", [Decimal("0"), Decimal("-50")])
    def test_no_savings_never_completes(self, window_net):
        prediction = project_completion(goal(), window_net, TODAY)
        assert prediction.months_remaining is None
        assert prediction.predicted_date is None
        assert prediction.monthly_savings is None
        assert prediction.is_on_track is False

    def test_on_track(self):
        on_time = project_completion(
            goal(target_date=dt.date(2025, 4, 15)), Decimal("300"), TODAY
        )
        late = project_completion(
            goal(target_date=dt.date(2025, 4, 14)), Decimal("300"), TODAY
        )
        assert on_time.is_on_track is True
        assert late.is_on_track is False

    def test_reached_goal_needs_no_months(self):
        prediction = project_completion(goal(current="1500"), Decimal("300"), TODAY)
        assert prediction.months_remaining == 0
        assert prediction.predicted_date == TODAY

    def test_month_end_clamping(self):
        prediction = project_completion(goal(target="100"), Decimal("300"), dt.date(2024, 1, 31))
        assert prediction.predicted_date == dt.date(2024, 2, 29)


class TestAutoUpdate:

    async def _goal(self, ledger, start="2024-06-01", target="1000"):
        return await ledger.add_goal({
            "name": "Trip",
            "target_amount": target,
            "start_date": start,
        })

    async def test_net_savings_since_start(
        self, ledger, account_id, expense_category_id, income_category_id
    ):
        goal_id = await self._goal(ledger)
        await ledger.add_transaction(transaction_data(
            account_id, income_category_id, "500", transaction_type=INCOME,
            date=dt.date(2024, 5, 31),
        ))
        await ledger.add_transaction(transaction_data(
            account_id, income_category_id, "300", transaction_type=INCOME,
            date=dt.date(2024, 6, 1),
        ))
        await ledger.add_transaction(transaction_data(
            account_id, expense_category_id, "100", date=dt.date(2024, 6, 2),
        ))

        assert await ledger.refresh_goals(TODAY) is True
        refreshed = await ledger.goals.get_by_id(goal_id)
        assert refreshed.current_amount == Decimal("200")

    async def test_runs_once_per_day(
        self, ledger, account_id, income_category_id
    ):
        goal_id = await self._goal(ledger)
        assert await ledger.refresh_goals(TODAY) is True

        await ledger.add_transaction(transaction_data(
            account_id, income_category_id, "50", transaction_type=INCOME,
        ))
        assert await ledger.refresh_goals(TODAY) is False
        assert (await ledger.goals.get_by_id(goal_id)).current_amount == Decimal("0")

        assert await ledger.refresh_goals(TODAY + dt.timedelta(days=1)) is True
        assert (await ledger.goals.get_by_id(goal_id)).current_amount == Decimal("50")
        assert (await ledger.get_settings()).savings_goals_last_update == "2024-06-16"

    async def test_negative_net_is_stored_as_zero(
        self, ledger, account_id, expense_category_id
    ):
        goal_id = await self._goal(ledger)
        await ledger.add_transaction(transaction_data(account_id, expense_category_id, "80"))
        await ledger.refresh_goals(TODAY)
        assert (await ledger.goals.get_by_id(goal_id)).current_amount == Decimal("0")

    async def test_achieved_goals_are_skipped(
        self, ledger, account_id, income_category_id
    ):
        goal_id = await self._goal(ledger, target="100")
        await ledger.update_goal_progress(goal_id, Decimal("100"))
        await ledger.add_transaction(transaction_data(
            account_id, income_category_id, "40", transaction_type=INCOME,
        ))

        await ledger.refresh_goals(TODAY)
        refreshed = await ledger.goals.get_by_id(goal_id)
        assert refreshed.achieved is True
        assert refreshed.current_amount == Decimal("100")

    async def test_concurrent_runs_update_once(self, ledger):
        import asyncio

        await self._goal(ledger)
        results = await asyncio.gather(
            ledger.refresh_goals(TODAY),
            ledger.refresh_goals(TODAY),
            ledger.refresh_goals(TODAY),
        )
        assert sorted(results) == [False, False, True]


class TestPredict:

    async def test_predict_uses_trailing_window(
        self, ledger, account_id, income_category_id
    ):
        goal_id = await ledger.add_goal({
            "name": "Trip",
            "target_amount": "1000",
            "start_date": "2024-01-01",
        })
        # Inside the window (2024-03-15 .. 2024-06-15)
        await ledger.add_transaction(transaction_data(
            account_id, income_category_id, "300", transaction_type=INCOME,
            date=dt.date(2024, 3, 15),
        ))
        # Outside
        await ledger.add_transaction(transaction_data(
            account_id, income_category_id, "9000", transaction_type=INCOME,
            date=dt.date(2024, 3, 14),
        ))

        prediction = await ledger.predict_goal(goal_id, today=TODAY)
        assert prediction.monthly_savings == Decimal("100")
        assert prediction.months_remaining == 10

    async def test_predict_missing_goal(self, ledger):
        with pytest.raises(EntityNotFoundError):
            await ledger.predict_goal("missing", today=TODAY)


def test_net_savings_filters_by_date():
    assert net_savings([], since=TODAY) == Decimal("0")
