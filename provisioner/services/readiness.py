import asyncio
from dataclasses import dataclass
import logging

from provisioner.cloud.interface import CloudConnection, WorkQueueObserver
from provisioner.services.address_resolver import AddressResolver, DnsAddressResolver
from provisioner.services.exceptions import (
    ConnectError,
    HostnameLookupError,
    ReadinessAbandonedError,
    ReadinessTimeoutError,
)
from shared.domain.cloud import NetworkAddress
from shared.domain.constants import DNS_INITIAL_DELAY, DNS_POLL_INTERVAL, NO_TIMEOUT
from shared.utils.clock import Clock, SystemClock
from shared.utils.naming import hostname_from_url


logger = logging.getLogger(__name__)


@dataclass
class ReadinessResult:
    """Outcome of waiting for a worker's DNS name to propagate"""

    unique_id: str
    address: NetworkAddress | None = None
    attempts: int = 0
    abandoned: bool = False

    @property
    def is_ready(self) -> bool:
        return self.address is not None


async def lookup_hostname(connection: CloudConnection, name: str) -> str:
    """Hostname of application `name`, derived from its application URL"""
    try:
        user = await connection.get_user()
        domain = await user.get_default_domain()
        app = await domain.get_application_by_name(name)
        if app is None:
            raise HostnameLookupError(
                f"Unable to find application url for {name}", worker_name=name
            )
        url = await app.get_application_url()
    except HostnameLookupError:
        raise
    except Exception as e:
        raise HostnameLookupError(
            f"Unable to find application url for {name}: {e}", worker_name=name
        ) from e

    return hostname_from_url(url)


class ReadinessPoller:
    """Waits until a freshly created application is resolvable by DNS"""

    def __init__(
        self,
        connection: CloudConnection,
        queue_observer: WorkQueueObserver,
        connection_lock: asyncio.Lock,
        clock: Clock | None = None,
        address_resolver: AddressResolver | None = None,
        initial_delay: float = DNS_INITIAL_DELAY,
        poll_interval: float = DNS_POLL_INTERVAL,
        raise_on_abandoned: bool = False,
    ):
        self.connection = connection
        self.queue_observer = queue_observer
        self.connection_lock = connection_lock
        self.clock = clock or SystemClock()
        self.address_resolver = address_resolver or DnsAddressResolver()
        self.initial_delay = initial_delay
        self.poll_interval = poll_interval
        self.raise_on_abandoned = raise_on_abandoned

    async def fetch_unique_id(self, name: str) -> str:
        """
        Re-fetch the application and return the id of the first gear of its
        first gear group. The id is not guaranteed at creation time.
        """
        async with self.connection_lock:
            try:
                user = await self.connection.get_user()
                domain = await user.get_default_domain()
                app = await domain.get_application_by_name(name)
                gear_groups = await app.get_gear_groups() if app is not None else None
            except Exception as e:
                raise ConnectError(
                    f"Unable to connect to application {name}: {e}", worker_name=name
                ) from e

        if app is None:
            raise ConnectError(
                f"Failed to connect/find application {name}", worker_name=name
            )
        if not gear_groups or not gear_groups[0].gears:
            raise ConnectError(
                f"Application {name} has no gears to identify it", worker_name=name
            )
        return gear_groups[0].gears[0].id

    async def await_ready(
        self, name: str, timeout_ms: int, delay_first_check: bool
    ) -> ReadinessResult:
        """
        Poll DNS for the worker's hostname until it resolves, the deadline
        passes or the work queue no longer needs the worker.

        Raises:
            ConnectError: the application cannot be found or identified
            ReadinessTimeoutError: the deadline passed while work was pending
            ReadinessAbandonedError: the queue emptied first and
                raise_on_abandoned is set
        """
        unique_id = await self.fetch_unique_id(name)
        logger.info(f"Established unique id for {name} = {unique_id}")

        # Let DNS propagate before probing to avoid a cached negative answer
        if delay_first_check:
            await self.clock.sleep(self.initial_delay)

        timeout_enabled = timeout_ms != NO_TIMEOUT
        start = self.clock.monotonic()
        attempts = 0

        while self.queue_observer.has_pending_work() and (
            not timeout_enabled or self.clock.elapsed_ms(start) < timeout_ms
        ):
            async with self.connection_lock:
                try:
                    hostname = await lookup_hostname(self.connection, name)
                except HostnameLookupError as e:
                    raise ConnectError(str(e), worker_name=name) from e

            attempts += 1
            logger.info(
                f"Checking to see if worker DNS for {hostname} is resolvable ... "
                f"(timeout: {timeout_ms}ms)"
            )
            try:
                address = await self.address_resolver.resolve(hostname)
            except OSError:
                remaining = (
                    f"{timeout_ms - self.clock.elapsed_ms(start):.0f}ms"
                    if timeout_enabled
                    else "unbounded"
                )
                logger.info(
                    f"Worker DNS not propagated yet, retrying... (remaining: {remaining})"
                )
                await self.clock.sleep(self.poll_interval)
                continue
            except Exception as e:
                raise ConnectError(
                    f"Unable to resolve worker DNS for {hostname}: {e}", worker_name=name
                ) from e

            logger.info(f"Worker DNS resolved - {address}")
            return ReadinessResult(
                unique_id=unique_id, address=address, attempts=attempts
            )

        if timeout_enabled and self.clock.elapsed_ms(start) >= timeout_ms:
            logger.warning(f"Worker DNS for {name} not propagated. Timing out.")
            raise ReadinessTimeoutError(
                f"Worker DNS for {name} not propagated after {timeout_ms}ms",
                worker_name=name,
            )

        logger.warning(
            f"Stopped waiting for worker {name} DNS after {attempts} attempts: "
            f"no pending work left"
        )
        if self.raise_on_abandoned:
            raise ReadinessAbandonedError(
                f"Work queue emptied before worker {name} became reachable",
                worker_name=name,
            )
        return ReadinessResult(unique_id=unique_id, attempts=attempts, abandoned=True)
