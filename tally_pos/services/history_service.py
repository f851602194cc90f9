# tally_pos/services/history_service.py
import calendar
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Tuple

import requests

from tally_pos.domain.errors import RemoteRejected, RemoteUnreachable
from tally_pos.domain.schemas import (
    HistorySummary,
    Identity,
    TransactionResult,
    TransactionStatus,
)
from tally_pos.services.api_client import error_message
from tally_pos.services.transaction_client import TransactionClient
from tally_pos.utils.logging import get_logger
from tally_pos.utils.money import ZERO

logger = get_logger(__name__)

PRESETS = ("today", "week", "month", "custom", "all")


def _month_back(day: date) -> date:
    year, month = (day.year, day.month - 1) if day.month > 1 else (day.year - 1, 12)
    #31 March -> 28/29 February
    last_day = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last_day))


def date_range(
    preset: str,
    today: date,
    start: date | None = None,
    end: date | None = None,
) -> Tuple[datetime | None, datetime | None]:
    """Start/end bounds for a history filter preset."""
    midnight = datetime.combine(today, time.min)

    if preset == "today":
        return midnight, None
    if preset == "week":
        return midnight - timedelta(days=7), None
    if preset == "month":
        return datetime.combine(_month_back(today), time.min), None
    if preset == "custom":
        if not start:
            return None, None
        end_dt = datetime.combine(end, time.max) if end else None
        return datetime.combine(start, time.min), end_dt
    if preset == "all":
        return None, None

    raise ValueError(f"Unknown date preset: {preset}")


def summarize(transactions: Iterable[TransactionResult]) -> HistorySummary:
    items = list(transactions)
    completed = [t for t in items if t.status == TransactionStatus.COMPLETED]
    return HistorySummary(
        transaction_count=len(items),
        completed_count=len(completed),
        total_sales=sum((t.total_amount for t in completed), ZERO),
    )


class HistoryService:
    """The cashier's own past transactions."""

    def __init__(self, transaction_client: TransactionClient):
        self.transaction_client = transaction_client

    def list_for(
        self,
        identity: Identity,
        preset: str = "today",
        today: date | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> Tuple[datetime | None, datetime | None, List[TransactionResult]]:
        start_dt, end_dt = date_range(preset, today or date.today(), start, end)
        try:
            items = self.transaction_client.list(user_id=identity.sub, start=start_dt, end=end_dt)
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Failed to load history for {identity.username}: {e}")
            items = []
        return start_dt, end_dt, items

    def get(self, transaction_id: str) -> TransactionResult:
        try:
            return self.transaction_client.get(transaction_id)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise RemoteRejected(error_message(e, f"Transaction {transaction_id} not found"), status) from e
        except requests.RequestException as e:
            raise RemoteUnreachable("Cannot reach the server") from e
