import asyncio
from datetime import datetime
import logging

from provisioner.cloud.interface import (
    AlwaysPendingQueueObserver,
    CloudConnection,
    RemoteExecutionChannel,
    WorkQueueObserver,
)
from provisioner.services.address_resolver import AddressResolver
from provisioner.services.application_provisioner import ApplicationProvisioner
from provisioner.services.exceptions import (
    InvalidTransitionError,
    WorkerLifecycleError,
)
from provisioner.services.readiness import ReadinessPoller, lookup_hostname
from provisioner.services.termination import TerminationResult, terminate_worker
from shared.domain.cloud import ApplicationHandle, NetworkAddress
from shared.domain.constants import DNS_INITIAL_DELAY, DNS_POLL_INTERVAL
from shared.domain.worker import WorkerPhase, WorkerSpec, WorkerState
from shared.utils.clock import Clock, SystemClock


logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: dict[WorkerPhase, set[WorkerPhase]] = {
    WorkerPhase.NEW: {WorkerPhase.PROVISIONING, WorkerPhase.TERMINATING},
    WorkerPhase.PROVISIONING: {
        WorkerPhase.AWAITING_READY,
        WorkerPhase.FAILED,
        WorkerPhase.TERMINATING,
    },
    WorkerPhase.AWAITING_READY: {
        WorkerPhase.READY,
        WorkerPhase.FAILED,
        WorkerPhase.TERMINATING,
    },
    # Re-connection by the launcher re-runs the readiness wait
    WorkerPhase.READY: {WorkerPhase.AWAITING_READY, WorkerPhase.TERMINATING},
    WorkerPhase.FAILED: {WorkerPhase.AWAITING_READY, WorkerPhase.TERMINATING},
    WorkerPhase.TERMINATING: {WorkerPhase.TERMINATED},
    WorkerPhase.TERMINATED: set(),
}


class CloudWorker:
    """
    Lifecycle controller of one cloud build worker.

    provision() creates the application and waits for it to be reachable,
    connect() re-runs the readiness wait, terminate() disposes of the worker.
    One logical task drives a worker; the connection is shared and accessed
    under connection_lock.
    """

    def __init__(
        self,
        spec: WorkerSpec,
        connection: CloudConnection,
        queue_observer: WorkQueueObserver | None = None,
        clock: Clock | None = None,
        address_resolver: AddressResolver | None = None,
        connection_lock: asyncio.Lock | None = None,
        initial_delay: float = DNS_INITIAL_DELAY,
        poll_interval: float = DNS_POLL_INTERVAL,
        raise_on_abandoned: bool = False,
    ):
        self.spec = spec
        self.state = WorkerState()
        self.connection = connection
        self.connection_lock = connection_lock or asyncio.Lock()
        self.clock = clock or SystemClock()
        self.channel: RemoteExecutionChannel | None = None
        self.application: ApplicationHandle | None = None
        self.termination_result: TerminationResult | None = None

        self.provisioner = ApplicationProvisioner(
            connection=connection, connection_lock=self.connection_lock
        )
        self.poller = ReadinessPoller(
            connection=connection,
            queue_observer=queue_observer or AlwaysPendingQueueObserver(),
            connection_lock=self.connection_lock,
            clock=self.clock,
            address_resolver=address_resolver,
            initial_delay=initial_delay,
            poll_interval=poll_interval,
            raise_on_abandoned=raise_on_abandoned,
        )
        logger.info(
            f"Creating worker {spec.name} ({spec.description}) with "
            f"{spec.idle_minutes}mins time-to-live"
        )

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def phase(self) -> WorkerPhase:
        return self.state.phase

    def _transition(self, new_phase: WorkerPhase) -> None:
        old_phase = self.state.phase
        if new_phase not in ALLOWED_TRANSITIONS[old_phase]:
            raise InvalidTransitionError(
                f"Worker {self.name} cannot go from {old_phase.value} to {new_phase.value}",
                worker_name=self.name,
            )
        logger.info(
            f"Worker {self.name} state transition: {old_phase.value} -> {new_phase.value}"
        )
        self.state.phase = new_phase
        self.state.last_state_change = datetime.now()

    def _fail(self) -> None:
        # terminate() may have run while the operation was in flight
        if self.state.phase in (WorkerPhase.PROVISIONING, WorkerPhase.AWAITING_READY):
            self._transition(WorkerPhase.FAILED)

    async def provision(self) -> None:
        """
        Create the remote application, then wait for it to become reachable.

        A failure leaves the worker FAILED; the caller is responsible for
        calling terminate() so the remote application is not leaked.
        """
        self._transition(WorkerPhase.PROVISIONING)
        try:
            self.application = await self.provisioner.create_application(self.spec)
        except WorkerLifecycleError:
            self._fail()
            raise

        if self.state.phase != WorkerPhase.PROVISIONING:
            logger.warning(
                f"Worker {self.name} application created while {self.state.phase.value}"
            )
            return

        self._transition(WorkerPhase.AWAITING_READY)
        await self._await_ready(delay_first_check=True)

    async def connect(self, delay_first_check: bool = False) -> NetworkAddress | None:
        """
        Wait until the worker's hostname resolves.

        Returns:
            NetworkAddress | None: resolved address, or None when the work
            queue emptied before the name resolved
        """
        if self.state.phase != WorkerPhase.AWAITING_READY:
            self._transition(WorkerPhase.AWAITING_READY)
        return await self._await_ready(delay_first_check=delay_first_check)

    async def _await_ready(self, delay_first_check: bool) -> NetworkAddress | None:
        logger.info(f"Connecting to worker {self.name}...")
        try:
            result = await self.poller.await_ready(
                name=self.name,
                timeout_ms=self.spec.readiness_timeout_ms,
                delay_first_check=delay_first_check,
            )
        except WorkerLifecycleError:
            self._fail()
            raise

        if self.state.phase != WorkerPhase.AWAITING_READY:
            logger.warning(
                f"Worker {self.name} became reachable while {self.state.phase.value}"
            )
            return None

        if not result.is_ready:
            # Stays AWAITING_READY: nothing failed, the wait was just not needed
            return None

        if self.state.unique_id is None:
            self.state.unique_id = result.unique_id
        elif self.state.unique_id != result.unique_id:
            logger.warning(
                f"Worker {self.name} reports unique id {result.unique_id}, "
                f"keeping {self.state.unique_id}"
            )
        self.state.address = result.address.ip
        self._transition(WorkerPhase.READY)
        return result.address

    async def terminate(self) -> TerminationResult:
        """Best-effort disposal; idempotent and never raises"""
        if self.state.phase in (WorkerPhase.TERMINATING, WorkerPhase.TERMINATED):
            logger.info(f"Worker {self.name} already {self.state.phase.value}")
            return self.termination_result or TerminationResult()

        logger.info(f"Terminating worker {self.name} (unique id: {self.state.unique_id})")
        self._transition(WorkerPhase.TERMINATING)
        try:
            self.termination_result = await terminate_worker(
                connection=self.connection,
                connection_lock=self.connection_lock,
                name=self.name,
                channel=self.channel,
            )
        finally:
            self._transition(WorkerPhase.TERMINATED)
        return self.termination_result

    async def get_hostname(self) -> str:
        """
        Raises:
            HostnameLookupError: the application or its URL cannot be found
        """
        async with self.connection_lock:
            return await lookup_hostname(self.connection, self.name)

    def get_unique_id(self) -> str | None:
        return self.state.unique_id

    def __repr__(self):
        return (
            f"CloudWorker(name={self.name}, framework={self.spec.framework}, "
            f"phase={self.state.phase.value}, unique_id={self.state.unique_id})"
        )
