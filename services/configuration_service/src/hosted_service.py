import asyncio
from datetime import datetime, UTC
from typing import Any, Dict, Optional

from shared.common_utils.logger import logger
from .configuration_service import ConfigurationService, ServiceState


class HostedConfigurationService:
    """Runs a ConfigurationService on a background task for the lifetime of the app."""

    def __init__(self, service: ConfigurationService, shutdown_timeout: float = 10.0):
        self.service = service
        self.shutdown_timeout = shutdown_timeout
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._started_at: Optional[datetime] = None
        self._error: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._error = None
        self._started_at = datetime.now(UTC)
        self._task = asyncio.create_task(self._run())
        logger.info("Configuration Service started")

    async def _run(self) -> None:
        try:
            await self.service.initialize(self._stop_event)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._error = str(e)
            logger.error(f"Configuration Service failed: {e}", exc_info=True)

    async def stop(self) -> None:
        if self._task is None:
            return

        self._stop_event.set()
        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=self.shutdown_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Configuration Service did not stop within {self.shutdown_timeout}s. Cancelling."
            )
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        finally:
            self._task = None
            if self.service.state != ServiceState.FAILED:
                self.service.state = ServiceState.STOPPED

        logger.info("Configuration Service stopped")

    def health(self) -> Dict[str, Any]:
        status = "unhealthy" if self.service.state == ServiceState.FAILED else "healthy"
        return {
            "status": status,
            "state": self.service.state.value,
            "store": self.service.store.name,
            "publisher": self.service.publisher.name if self.service.publisher else None,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "error": self._error,
        }
