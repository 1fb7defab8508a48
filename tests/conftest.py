"""
Shared pytest fixtures: in-memory fakes of the cloud collaborators
"""

import asyncio
import logging
import socket

import pytest

from provisioner.cloud.interface import (
    CloudApplication,
    CloudConnection,
    CloudDomain,
    CloudUser,
    RemoteExecutionChannel,
    WorkQueueObserver,
)
from provisioner.services.address_resolver import AddressResolver
from provisioner.services.lifecycle import CloudWorker
from shared.domain.cloud import (
    CartridgeDescriptor,
    Gear,
    GearGroup,
    GearProfileDescriptor,
    NetworkAddress,
)
from shared.domain.worker import WorkerSpec
from shared.storage.in_memory_registry import InMemoryWorkerRegistry
from shared.utils.clock import Clock


logger = logging.getLogger(__name__)


class FakeClock(Clock):
    """Clock whose sleep advances simulated time instantly"""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        # Let other tasks run like a real sleep would
        await asyncio.sleep(0)


class FakeApplication(CloudApplication):
    def __init__(self, name: str, domain: "FakeDomain", gear_id: str):
        self._name = name
        self.domain = domain
        self.gear_groups = [GearGroup(name="builder", gears=[Gear(id=gear_id)])]
        self.stopped = False
        self.destroyed = False
        self.fail_stop = False

    @property
    def name(self) -> str:
        return self._name

    async def stop(self) -> None:
        if self.fail_stop:
            raise RuntimeError("stop rejected")
        self.stopped = True

    async def destroy(self) -> None:
        self.destroyed = True
        self.domain.applications.pop(self._name, None)

    async def get_application_url(self) -> str:
        return f"http://{self._name}-{self.domain.id}.example.com/"

    async def get_gear_groups(self) -> list[GearGroup]:
        return self.gear_groups


class FakeDomain(CloudDomain):
    def __init__(self, profiles: list[str]):
        self.profiles = [GearProfileDescriptor(name=p) for p in profiles]
        self.applications: dict[str, FakeApplication] = {}
        self.create_calls: list[tuple[str, str, str]] = []
        self.fail_create_times = 0
        self.fail_stop = False

    @property
    def id(self) -> str:
        return "builds"

    async def get_available_gear_profiles(self) -> list[GearProfileDescriptor]:
        return self.profiles

    async def create_application(self, name, cartridge, gear_profile) -> FakeApplication:
        self.create_calls.append((name, cartridge.name, gear_profile.name))
        if self.fail_create_times > 0:
            self.fail_create_times -= 1
            raise RuntimeError("quota exceeded")
        app = FakeApplication(
            name=name, domain=self, gear_id=f"gear-{len(self.create_calls)}"
        )
        app.fail_stop = self.fail_stop
        self.applications[name] = app
        return app

    async def get_application_by_name(self, name: str) -> FakeApplication | None:
        return self.applications.get(name)


class FakeUser(CloudUser):
    def __init__(self, domain: FakeDomain):
        self.domain = domain

    async def get_default_domain(self) -> FakeDomain:
        return self.domain


class FakeConnection(CloudConnection):
    def __init__(self, cartridges: list[str], profiles: list[str]):
        self.cartridges = [CartridgeDescriptor(name=c) for c in cartridges]
        self.domain = FakeDomain(profiles=profiles)
        self.user = FakeUser(self.domain)

    async def get_user(self) -> FakeUser:
        return self.user

    async def get_standalone_cartridges(self) -> list[CartridgeDescriptor]:
        return self.cartridges


class FakeQueueObserver(WorkQueueObserver):
    """Reports pending work for the first `pending_checks` queries (None: always)"""

    def __init__(self, pending_checks: int | None = None):
        self.pending_checks = pending_checks
        self.calls = 0

    def has_pending_work(self) -> bool:
        self.calls += 1
        if self.pending_checks is None:
            return True
        return self.calls <= self.pending_checks


class FlakyAddressResolver(AddressResolver):
    """Fails `failures` times before resolving (None: never resolves)"""

    def __init__(self, failures: int | None = 0):
        self.failures = failures
        self.attempts: list[str] = []

    async def resolve(self, hostname: str) -> NetworkAddress:
        self.attempts.append(hostname)
        if self.failures is None or len(self.attempts) <= self.failures:
            raise socket.gaierror(f"Name or service not known: {hostname}")
        return NetworkAddress(hostname=hostname, ip="10.0.0.7")


class FakeChannel(RemoteExecutionChannel):
    def __init__(self, fail_close: bool = False):
        self.open = True
        self.fail_close = fail_close
        self.close_calls = 0

    def is_open(self) -> bool:
        return self.open

    async def close(self) -> None:
        self.close_calls += 1
        if self.fail_close:
            raise OSError("channel reset by peer")
        self.open = False


@pytest.fixture
def connection():
    return FakeConnection(
        cartridges=["jbossas-7", "php-5.3"], profiles=["small", "medium"]
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry():
    return InMemoryWorkerRegistry()


@pytest.fixture
def worker_spec():
    return WorkerSpec(
        name="jbossas7builder",
        framework="redhat-jbossas-7",
        size_label="small",
        readiness_timeout_ms=60000,
        label="java",
    )


@pytest.fixture
def make_worker(connection, clock):
    """Build a CloudWorker wired to the fakes"""

    def _make_worker(
        spec: WorkerSpec,
        resolver: AddressResolver | None = None,
        queue_observer: WorkQueueObserver | None = None,
        **kwargs,
    ) -> CloudWorker:
        return CloudWorker(
            spec=spec,
            connection=connection,
            queue_observer=queue_observer or FakeQueueObserver(),
            clock=clock,
            address_resolver=resolver or FlakyAddressResolver(),
            **kwargs,
        )

    return _make_worker


class LocalhostApplication(FakeApplication):
    async def get_application_url(self) -> str:
        return "http://localhost/"


class LocalhostDomain(FakeDomain):
    async def create_application(self, name, cartridge, gear_profile):
        self.create_calls.append((name, cartridge.name, gear_profile.name))
        app = LocalhostApplication(name=name, domain=self, gear_id="gear-local")
        self.applications[name] = app
        return app


def build_localhost_connection(credentials) -> FakeConnection:
    """Connection factory whose applications resolve without network access"""
    connection = FakeConnection(cartridges=["jbossas-7"], profiles=["small"])
    connection.domain = LocalhostDomain(profiles=["small"])
    connection.user = FakeUser(connection.domain)
    connection.credentials = credentials
    build_localhost_connection.last = connection
    return connection
