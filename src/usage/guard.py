import logging
from datetime import datetime, timezone

from src.config.settings import DAILY_USAGE_LIMIT

logger = logging.getLogger(__name__)


class QuotaExceeded(Exception):
    """Raised when a client has used up its daily quota."""

    status_code = 429

    def __init__(self, client_id, count, limit):
        self.client_id = client_id
        self.count = count
        self.limit = limit
        self.message = f"Daily usage limit exceeded ({limit} requests per day)"
        super().__init__(self.message)


def utc_today():
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


class UsageGuard:
    """
    Enforces the per-client daily quota on top of a usage store.

    A call is reserved before the external request and released again if that
    request fails, so only successful calls count and the limit cannot be
    overshot by concurrent requests from the same client.
    """

    def __init__(self, store, limit=DAILY_USAGE_LIMIT, today=utc_today):
        self.store = store
        self.limit = limit
        self.today = today

    def usage(self, client_id):
        """Return (count, limit, date) for today without touching the store."""
        date = self.today()
        record = self.store.get(client_id, date)
        return (record.count if record else 0), self.limit, date

    def acquire(self, client_id):
        """Reserve one call for today and return (new count, date)."""
        date = self.today()
        record = self.store.increment_if_below(client_id, date, self.limit)
        if record is None:
            logger.warning(f"Daily quota reached for {client_id} on {date}")
            raise QuotaExceeded(client_id, self.limit, self.limit)
        return record.count, date

    def release(self, client_id, date=None):
        """Give back a reservation after the downstream call failed."""
        date = date or self.today()
        record = self.store.decrement(client_id, date)
        return record.count if record else 0
