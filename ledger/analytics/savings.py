"""
Savings Goal Projection Engine

Goal progress is the user's observed net savings (income minus expense,
over every account) since the goal's start date. It is refreshed at most
once per calendar day, then projected forward from the recent saving rate.

DESIGN DECISION: The daily refresh rescans the full transaction history.
That keeps the result exact whatever was edited or deleted since the last
run. The run is gated by `savings_goals_last_update` in the settings, so
calling it again the same day does nothing; an asyncio.Lock keeps two
overlapping calls from both passing the gate.
"""

import asyncio
import datetime as dt
import math
from decimal import Decimal
from typing import Iterable, Optional

import structlog
from dateutil.relativedelta import relativedelta

from ledger.audit import AuditLogger
from ledger.config import get_settings
from ledger.models.entities import SavingsGoal, Transaction
from ledger.models.views import GoalPrediction
from ledger.repositories import SavingsGoalRepository, TransactionRepository
from ledger.settings_store import SettingsStore

logger = structlog.get_logger(__name__)


def net_savings(transactions: Iterable[Transaction], since: Optional[dt.date] = None) -> Decimal:
    """Income minus expense, counting only transactions dated on/after `since`."""
    return sum(
        (t.signed_amount for t in transactions if since is None or t.date >= since),
        Decimal("0"),
    )


def project_completion(
    goal: SavingsGoal,
    window_net_savings: Decimal,
    today: dt.date,
    window_months: int = 3,
) -> GoalPrediction:
    """
    Estimate when `goal` completes at the recent saving rate.

    The rate is the window's net savings averaged per month. A rate of zero
    or less never reaches the goal: nothing is predicted and the goal is
    off track.
    """
    monthly = window_net_savings / window_months
    if monthly <= 0:
        return GoalPrediction(goal_id=goal.id, is_on_track=False)

    remaining = max(goal.target_amount - goal.current_amount, Decimal("0"))
    months_remaining = math.ceil(remaining / monthly)
    predicted_date = today + relativedelta(months=months_remaining)

    is_on_track = None
    if goal.target_date is not None:
        is_on_track = predicted_date <= goal.target_date

    return GoalPrediction(
        goal_id=goal.id,
        months_remaining=months_remaining,
        predicted_date=predicted_date,
        monthly_savings=monthly,
        is_on_track=is_on_track,
    )


class SavingsProjectionEngine:
    """Keeps goal progress current and predicts completion dates."""

    def __init__(
        self,
        goals: SavingsGoalRepository,
        transactions: TransactionRepository,
        settings_store: SettingsStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._goals = goals
        self._transactions = transactions
        self._settings_store = settings_store
        self._audit = audit_logger or AuditLogger()
        self._window_months = get_settings().app.projection_window_months
        self._lock = asyncio.Lock()

    async def update_progress(self, goal_id: str, current_amount: Decimal) -> SavingsGoal:
        """Set a goal's observed savings. Achievement never reverts."""
        return await self._goals.update_progress(goal_id, current_amount)

    async def net_savings_since(self, start_date: dt.date) -> Decimal:
        return net_savings(await self._transactions.get_since(start_date))

    async def run_auto_update(self, today: Optional[dt.date] = None) -> bool:
        """
        Refresh every active goal from the full history, once per day.

        Returns:
            True if the refresh ran, False if it had already run today
        """
        today = today or dt.date.today()
        run_date = today.isoformat()

        async with self._lock:
            settings = await self._settings_store.get()
            if settings.savings_goals_last_update == run_date:
                logger.debug("savings_auto_update_skipped", run_date=run_date)
                return False

            goals = await self._goals.get_active()
            history = await self._transactions.get_all()
            for goal in goals:
                await self._goals.update_progress(
                    goal.id,
                    net_savings(history, since=goal.start_date),
                )

            await self._settings_store.update(savings_goals_last_update=run_date)

        await self._audit.log_goals_auto_updated(run_date, len(goals))
        return True

    async def predict(
        self,
        goal: SavingsGoal,
        today: Optional[dt.date] = None,
    ) -> GoalPrediction:
        """Completion estimate from the trailing window's saving rate."""
        today = today or dt.date.today()
        window_start = today - relativedelta(months=self._window_months)
        recent = await self._transactions.get_by_date_range(window_start, today)
        return project_completion(
            goal,
            net_savings(recent),
            today,
            window_months=self._window_months,
        )
