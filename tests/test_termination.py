"""
Tests for best-effort worker termination
"""

import asyncio

from conftest import FakeChannel
from provisioner.services.termination import terminate_worker
from shared.domain.cloud import CartridgeDescriptor, GearProfileDescriptor


async def create_app(connection, name):
    return await connection.domain.create_application(
        name, CartridgeDescriptor(name="jbossas-7"), GearProfileDescriptor(name="small")
    )


async def test_closes_channel_then_destroys(connection):
    app = await create_app(connection, "builder1")
    channel = FakeChannel()

    result = await terminate_worker(connection, asyncio.Lock(), "builder1", channel)

    assert result.channel_closed is True
    assert result.application_destroyed is True
    assert result.errors == []
    assert app.destroyed is True


async def test_closed_channel_is_left_alone(connection):
    await create_app(connection, "builder1")
    channel = FakeChannel()
    channel.open = False

    result = await terminate_worker(connection, asyncio.Lock(), "builder1", channel)

    assert channel.close_calls == 0
    assert result.channel_closed is False
    assert result.application_destroyed is True


async def test_channel_failure_does_not_stop_destroy(connection):
    app = await create_app(connection, "builder1")

    result = await terminate_worker(
        connection, asyncio.Lock(), "builder1", FakeChannel(fail_close=True)
    )

    assert app.destroyed is True
    assert result.application_destroyed is True
    assert result.errors == ["channel: channel reset by peer"]


async def test_missing_application_is_swallowed(connection, caplog):
    result = await terminate_worker(connection, asyncio.Lock(), "ghost")

    assert result.application_destroyed is False
    assert result.errors == ["application: not found"]
    assert "Unable to terminate application ghost" in caplog.text


async def test_destroy_failure_is_swallowed(connection):
    app = await create_app(connection, "builder1")

    async def broken_destroy():
        raise RuntimeError("control plane unavailable")

    app.destroy = broken_destroy

    result = await terminate_worker(connection, asyncio.Lock(), "builder1")

    assert result.application_destroyed is False
    assert result.errors == ["application: control plane unavailable"]
