import asyncio
from collections import deque
from dataclasses import dataclass, field
import logging
from typing import Dict, List

from provisioner import config
from provisioner.cloud.interface import CloudConnection, WorkQueueObserver
from provisioner.services.address_resolver import AddressResolver
from provisioner.services.exceptions import WorkerNameConflictError
from provisioner.services.lifecycle import CloudWorker
from provisioner.services.retry_policy import ProvisionRetryPolicy
from provisioner.services.termination import TerminationResult
from shared.domain.worker import WorkerPhase, WorkerSpec
from shared.storage.factory import get_worker_registry
from shared.storage.registry_interface import WorkerRegistryInterface
from shared.utils.clock import Clock, SystemClock


logger = logging.getLogger(__name__)


@dataclass
class FleetProvisionResult:
    """Result of provisioning several workers at once"""

    workers: list[CloudWorker] = field(default_factory=list)
    failures: dict[str, Exception] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failures


class WorkerFleetService:
    """
    Owns the live cloud workers of one cloud connection.

    Every worker gets its own lifecycle controller; they share the connection
    and the lock serializing access to it.
    """

    def __init__(
        self,
        connection: CloudConnection,
        queue_observer: WorkQueueObserver | None = None,
        registry: WorkerRegistryInterface | None = None,
        retry_policy: ProvisionRetryPolicy | None = None,
        clock: Clock | None = None,
        address_resolver: AddressResolver | None = None,
        initial_delay: float | None = None,
        poll_interval: float | None = None,
        raise_on_abandoned: bool | None = None,
    ):
        self.connection = connection
        self.connection_lock = asyncio.Lock()
        self.queue_observer = queue_observer
        self.registry = registry or get_worker_registry()
        self.retry_policy = retry_policy or config.get_provision_retry_policy()
        self.clock = clock or SystemClock()
        self.address_resolver = address_resolver
        self.initial_delay = (
            config.get_dns_initial_delay() if initial_delay is None else initial_delay
        )
        self.poll_interval = (
            config.get_dns_poll_interval() if poll_interval is None else poll_interval
        )
        self.raise_on_abandoned = (
            config.get_raise_on_abandoned_readiness()
            if raise_on_abandoned is None
            else raise_on_abandoned
        )
        self.last_activity: Dict[str, float] = {}
        self._background_tasks: deque = deque(maxlen=1000)

    def new_spec(
        self, framework: str, size_label: str | None = None, label: str = ""
    ) -> WorkerSpec:
        """Spec with a fresh unique name and configured defaults"""
        return WorkerSpec.for_framework(
            framework=framework,
            size_label=size_label or config.get_builder_size(),
            readiness_timeout_ms=config.get_readiness_timeout_ms(),
            label=label,
            executors=config.get_builder_executors(),
            idle_minutes=config.get_builder_idle_minutes(),
        )

    def _create_worker(self, spec: WorkerSpec) -> CloudWorker:
        return CloudWorker(
            spec=spec,
            connection=self.connection,
            queue_observer=self.queue_observer,
            clock=self.clock,
            address_resolver=self.address_resolver,
            connection_lock=self.connection_lock,
            initial_delay=self.initial_delay,
            poll_interval=self.poll_interval,
            raise_on_abandoned=self.raise_on_abandoned,
        )

    def _register(self, worker: CloudWorker) -> None:
        try:
            self.registry.register(worker.name, worker)
        except KeyError as e:
            raise WorkerNameConflictError(
                f"Worker {worker.name} is already live", worker_name=worker.name
            ) from e
        self.last_activity[worker.name] = self.clock.monotonic()

    def _unregister(self, name: str) -> None:
        self.registry.unregister(name)
        self.last_activity.pop(name, None)

    async def provision_worker(self, spec: WorkerSpec) -> CloudWorker:
        """
        Provision a worker, retrying transient failures with the retry policy.

        A worker whose provisioning failed is always terminated before the
        next attempt or before the error is raised, so no remote application
        is leaked.
        """
        attempt = 0
        while True:
            worker = self._create_worker(spec)
            self._register(worker)
            try:
                await worker.provision()
            except asyncio.CancelledError:
                logger.warning(f"Provisioning of worker {spec.name} cancelled")
                await worker.terminate()
                self._unregister(spec.name)
                raise
            except Exception as e:
                logger.warning(
                    f"Provisioning of worker {spec.name} failed (attempt {attempt + 1}): {e}"
                )
                await worker.terminate()
                self._unregister(spec.name)

                if not self.retry_policy.should_retry(error=e, attempt=attempt):
                    raise
                delay = self.retry_policy.calculate_delay(attempt=attempt)
                logger.info(f"Retrying worker {spec.name} in {delay:.1f}s")
                await self.clock.sleep(delay)
                attempt += 1
                continue

            # Idle time counts from the moment the worker is online
            self.last_activity[spec.name] = self.clock.monotonic()
            logger.info(f"Worker {spec.name} provisioned in phase {worker.phase.value}")
            return worker

    async def provision_workers(self, specs: List[WorkerSpec]) -> FleetProvisionResult:
        """Provision several workers concurrently"""
        results = await asyncio.gather(
            *(self.provision_worker(spec) for spec in specs), return_exceptions=True
        )
        fleet_result = FleetProvisionResult()
        for spec, result in zip(specs, results):
            if isinstance(result, Exception):
                fleet_result.failures[spec.name] = result
            else:
                fleet_result.workers.append(result)

        logger.info(
            f"Provisioned {len(fleet_result.workers)}/{len(specs)} workers"
        )
        return fleet_result

    def provision_in_background(self, spec: WorkerSpec) -> asyncio.Task:
        """Start provisioning without waiting for it"""
        task = asyncio.create_task(self.provision_worker(spec))
        self._add_task_worker_instance(task=task)
        return task

    async def terminate_worker(self, name: str) -> TerminationResult | None:
        worker = self.registry.get(name)
        if worker is None:
            logger.warning(f"Cannot terminate unknown worker {name}")
            return None

        result = await worker.terminate()
        self._unregister(name)
        return result

    async def terminate_all(self) -> None:
        names = [worker.name for worker in self.registry.get_all()]
        await asyncio.gather(*(self.terminate_worker(name) for name in names))

    def record_activity(self, name: str) -> None:
        """Mark a worker as busy now (e.g. when a job is scheduled onto it)"""
        if name in self.last_activity:
            self.last_activity[name] = self.clock.monotonic()

    def get_idle_seconds(self, name: str) -> float:
        return self.clock.monotonic() - self.last_activity.get(
            name, self.clock.monotonic()
        )

    def get_workers(self) -> List[CloudWorker]:
        return self.registry.get_all()

    def get_ready_workers(self) -> List[CloudWorker]:
        return [w for w in self.registry.get_all() if w.phase == WorkerPhase.READY]

    def _add_task_worker_instance(self, task: asyncio.Task):
        """
        Keep a strong reference to background tasks so they are not garbage
        collected before completion. Tasks remove themselves when done.
        """
        self._background_tasks.append(task)

        def cleanup(t):
            try:
                self._background_tasks.remove(t)
            except ValueError:
                # Already dropped due to maxlen
                pass
            if not t.cancelled() and t.exception() is not None:
                logger.error(f"Background provisioning failed: {t.exception()}")

        task.add_done_callback(cleanup)
