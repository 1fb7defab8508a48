"""
Tests for creating the remote application of a worker
"""

import asyncio

import pytest

from provisioner.services.application_provisioner import ApplicationProvisioner
from provisioner.services.exceptions import CartridgeNotFoundError, ProvisionError
from shared.domain.worker import WorkerSpec


@pytest.fixture
def app_provisioner(connection):
    return ApplicationProvisioner(connection=connection, connection_lock=asyncio.Lock())


async def test_creates_and_stops_application(app_provisioner, connection, worker_spec):
    handle = await app_provisioner.create_application(worker_spec)

    assert handle.name == "jbossas7builder"
    assert handle.domain_id == "builds"
    assert handle.cartridge.name == "jbossas-7"
    assert handle.gear_profile.name == "small"
    assert handle.fallback_profile_used is False

    app = connection.domain.applications["jbossas7builder"]
    assert app.stopped is True


async def test_fallback_profile_is_reported(app_provisioner, connection):
    spec = WorkerSpec(name="php53builder", framework="php-5.3", size_label="large")

    handle = await app_provisioner.create_application(spec)

    assert handle.gear_profile.name == "small"
    assert handle.fallback_profile_used is True


async def test_unknown_cartridge_fails_before_create(app_provisioner, connection):
    spec = WorkerSpec(name="unknownbuilder", framework="unknown-fw", size_label="small")

    with pytest.raises(CartridgeNotFoundError) as exc_info:
        await app_provisioner.create_application(spec)

    assert exc_info.value.worker_name == "unknownbuilder"
    assert connection.domain.create_calls == []


async def test_create_failure_is_wrapped(app_provisioner, connection, worker_spec):
    connection.domain.fail_create_times = 1

    with pytest.raises(ProvisionError) as exc_info:
        await app_provisioner.create_application(worker_spec)

    assert exc_info.value.application_created is False
    assert isinstance(exc_info.value.__cause__, RuntimeError)


async def test_stop_failure_reports_created_application(
    app_provisioner, connection, worker_spec
):
    connection.domain.fail_stop = True

    with pytest.raises(ProvisionError) as exc_info:
        await app_provisioner.create_application(worker_spec)

    # The application exists and still has to be terminated by the caller
    assert exc_info.value.application_created is True
    assert "jbossas7builder" in connection.domain.applications
