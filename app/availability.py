from __future__ import annotations

from datetime import datetime
from uuid import UUID

from loguru import logger
from tortoise.exceptions import BaseORMException

from app import settings
from app.crud import ReservationCRUD, reservation_crud
from app.errors import AvailabilityCheckFailed


class AvailabilityChecker:
    """
    Decides whether [start, end) is free on a resource.

    Read-only, so a failed query is retried up to `attempts` times. When every
    attempt fails the checker raises AvailabilityCheckFailed; it never reports
    a window as available because the backend could not be read.
    """

    def __init__(
        self,
        crud: ReservationCRUD = reservation_crud,
        attempts: int = settings.AVAILABILITY_CHECK_ATTEMPTS,
    ) -> None:
        self._crud = crud
        self._attempts = max(1, attempts)

    async def is_available(
        self, resource_id: UUID, start: datetime, end: datetime
    ) -> bool:
        last_error: Exception | None = None
        for attempt in range(1, self._attempts + 1):
            try:
                return not await self._crud.has_conflict(resource_id, start, end)
            except (BaseORMException, OSError) as exc:
                last_error = exc
                logger.warning(
                    "Availability check failed for resource {} (attempt {}/{})",
                    resource_id,
                    attempt,
                    self._attempts,
                    exc_info=True,
                )
        raise AvailabilityCheckFailed(
            f"availability query failed after {self._attempts} attempts: {last_error}"
        ) from last_error
