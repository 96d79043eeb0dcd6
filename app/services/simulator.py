import asyncio
import logging
import random
from datetime import datetime, timezone
from typing import Optional
from ..models import DBResult

logger = logging.getLogger(__name__)


def user_query(user_id: str) -> str:
    return f"SELECT * FROM users WHERE id={user_id}"


def preferences_query(user_id: str) -> str:
    return f"SELECT * FROM preferences WHERE user_id={user_id}"


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class QuerySimulator:
    """Stands in for a slow database: answers every query after a fixed delay."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    async def query(self, label: str, delay_ms: int = 3000) -> DBResult:
        logger.info('Starting DB query: "%s" (will take %dms)', label, delay_ms)
        await asyncio.sleep(delay_ms / 1000)
        result = DBResult(
            id=self.rng.randrange(1000),
            query=label,
            timestamp=_utc_timestamp(),
            data=f"Result for {label}",
        )
        logger.info('DB query completed: "%s"', label)
        return result
