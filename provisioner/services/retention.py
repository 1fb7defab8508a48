import asyncio
import logging
from typing import List

from provisioner.services.lifecycle import CloudWorker
from provisioner.services.workers import WorkerFleetService
from shared.domain.worker import WorkerPhase


logger = logging.getLogger(__name__)


class IdleRetentionService:
    """Terminates ready workers that stayed idle longer than their time-to-live"""

    def __init__(self, fleet: WorkerFleetService, check_interval: float = 60):
        self.fleet = fleet
        self.check_interval = check_interval
        self._task = None
        self._running = False

    def start_monitoring(self):
        """Start monitoring workers"""
        if self._running:
            logger.warning("IdleRetentionService already running")
            return

        self._running = True
        self._task = asyncio.create_task(self.monitor_workers())

    async def stop(self):
        """Stop background retention monitoring"""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("IdleRetentionService stopped")

    async def monitor_workers(self):
        while self._running:
            try:
                await self.check_workers()
                await self.fleet.clock.sleep(self.check_interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in retention loop: {e}")
                await self.fleet.clock.sleep(self.check_interval)

    def _is_expired(self, worker: CloudWorker) -> bool:
        if worker.phase != WorkerPhase.READY:
            return False
        return self.fleet.get_idle_seconds(worker.name) > worker.spec.idle_minutes * 60

    async def check_workers(self) -> List[str]:
        """Terminate every expired worker; returns the terminated names"""
        expired = [w.name for w in self.fleet.get_workers() if self._is_expired(w)]
        for name in expired:
            logger.info(
                f"Worker {name} idle for {self.fleet.get_idle_seconds(name):.0f}s, terminating"
            )
            await self.fleet.terminate_worker(name)
        return expired
