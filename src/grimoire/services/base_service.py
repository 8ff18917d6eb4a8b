"""
Base service implementation with common functionality.

Provides shared patterns for service lifecycle and for bounding upstream
calls with a per-stage timeout across the transcription, generation and
synthesis services.
"""

import asyncio
import logging
from abc import ABC
from typing import Awaitable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseService(ABC):
    """Base service implementation with common functionality."""

    stage: str = "service"

    def __init__(self, timeout_s: float):
        self.timeout_s = timeout_s
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize the service."""
        if not self._initialized:
            await self._do_initialize()
            self._initialized = True
            logger.info(f"{self.__class__.__name__} initialized")

    async def shutdown(self) -> None:
        """Shutdown the service."""
        if self._initialized:
            await self._do_shutdown()
            self._initialized = False
            logger.info(f"{self.__class__.__name__} shutdown")

    async def health_check(self) -> bool:
        """Check if the service is healthy."""
        try:
            return self._initialized and await self._do_health_check()
        except Exception as e:
            logger.error(f"Health check failed for {self.__class__.__name__}: {e}")
            return False

    async def with_timeout(self, call: Awaitable[T]) -> T:
        """Await an upstream call, bounded by this stage's timeout.

        Raises:
            asyncio.TimeoutError: the call did not finish in time
        """
        return await asyncio.wait_for(call, timeout=self.timeout_s)

    async def _do_initialize(self) -> None:
        """Service-specific initialization logic."""
        pass

    async def _do_shutdown(self) -> None:
        """Service-specific shutdown logic."""
        pass

    async def _do_health_check(self) -> bool:
        """Service-specific health check logic."""
        return True
