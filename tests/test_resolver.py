"""
Tests for cartridge and gear profile resolution

Tests verify:
- Cartridges match the framework exactly once the vendor prefix is stripped
- Unknown frameworks fail with a non-retryable error
- Unknown sizes fall back to the first profile and say so
"""

import pytest

from provisioner.services.exceptions import (
    CartridgeNotFoundError,
    GearProfileUnavailableError,
)
from provisioner.services.resolver import resolve_cartridge, resolve_gear_profile
from shared.domain.cloud import CartridgeDescriptor, GearProfileDescriptor
from shared.utils.naming import normalize_framework


CARTRIDGES = [
    CartridgeDescriptor(name="php-5.3"),
    CartridgeDescriptor(name="jbossas-7"),
    CartridgeDescriptor(name="python-2.6"),
]
PROFILES = [GearProfileDescriptor(name="small"), GearProfileDescriptor(name="medium")]


@pytest.mark.parametrize(
    "framework, expected",
    [
        ("redhat-jbossas-7", "jbossas-7"),
        ("jbossas-7", "jbossas-7"),
        ("php-5.3", "php-5.3"),
    ],
)
def test_resolve_cartridge_exact_match(framework, expected):
    assert resolve_cartridge(framework, CARTRIDGES).name == expected


@pytest.mark.parametrize("framework", ["unknown-fw", "jbossas", "redhat-jbossas-7.1"])
def test_resolve_cartridge_not_found(framework):
    with pytest.raises(CartridgeNotFoundError) as exc_info:
        resolve_cartridge(framework, CARTRIDGES)

    assert exc_info.value.retryable is False


def test_vendor_prefix_only_stripped_at_start():
    assert normalize_framework("my-redhat-app") == "my-redhat-app"


def test_resolve_gear_profile_exact_match():
    resolution = resolve_gear_profile("medium", PROFILES)

    assert resolution.profile.name == "medium"
    assert resolution.fallback_used is False


def test_resolve_gear_profile_falls_back_to_first(caplog):
    resolution = resolve_gear_profile("xlarge", PROFILES)

    assert resolution.profile.name == "small"
    assert resolution.fallback_used is True
    assert "falling back to small" in caplog.text


def test_resolve_gear_profile_without_profiles():
    with pytest.raises(GearProfileUnavailableError):
        resolve_gear_profile("small", [])
