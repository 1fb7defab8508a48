import logging
from typing import List

from provisioner.services.exceptions import (
    CartridgeNotFoundError,
    GearProfileUnavailableError,
)
from shared.domain.cloud import (
    CartridgeDescriptor,
    GearProfileDescriptor,
    GearProfileResolution,
)
from shared.utils.naming import normalize_framework


logger = logging.getLogger(__name__)


def resolve_cartridge(
    framework: str, cartridges: List[CartridgeDescriptor]
) -> CartridgeDescriptor:
    """
    Find the cartridge whose name exactly matches the normalized framework.

    A missing cartridge is a configuration error and must not be retried.
    """
    target_name = normalize_framework(framework)
    for cartridge in cartridges:
        if cartridge.name == target_name:
            return cartridge

    raise CartridgeNotFoundError(f"Cartridge for {target_name} not found")


def resolve_gear_profile(
    size_label: str, profiles: List[GearProfileDescriptor]
) -> GearProfileResolution:
    """
    Find the gear profile named size_label.

    Falls back to the first available profile when there is no exact match;
    the returned resolution reports whether that happened.
    """
    if not profiles:
        raise GearProfileUnavailableError("No gear profiles available in domain")

    for profile in profiles:
        if profile.name == size_label:
            return GearProfileResolution(profile=profile)

    fallback = profiles[0]
    logger.warning(
        f"Gear profile {size_label} not available, falling back to {fallback.name} "
        f"(available: {[p.name for p in profiles]})"
    )
    return GearProfileResolution(profile=fallback, fallback_used=True)
