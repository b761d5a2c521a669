"""Timeout and failure mapping for store I/O.

Store calls made by application services run under a caller-configured
timeout. Timeouts and driver-level connection failures become
``ServiceUnavailableError`` so callers can tell "could not check" apart from
"denied".
"""

import asyncio
import logging
from typing import Awaitable, TypeVar

from sqlalchemy.exc import InterfaceError, OperationalError

from keygate.domain.shared.exceptions import ServiceUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreGuard:
    def __init__(self, timeout_seconds: float | None = 5.0):
        self._timeout = timeout_seconds

    async def __call__(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            if self._timeout is None:
                return await awaitable
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            logger.error("Store timeout during %s after %ss", operation, self._timeout)
            raise ServiceUnavailableError from e
        except (OperationalError, InterfaceError) as e:
            logger.error("Store failure during %s: %s", operation, e)
            raise ServiceUnavailableError from e
