from dataclasses import dataclass, field


@dataclass(frozen=True)
class CartridgeDescriptor:
    """Runtime type installable on a remote application"""

    name: str
    display_name: str | None = None


@dataclass(frozen=True)
class GearProfileDescriptor:
    """Size tier of a remote application"""

    name: str


@dataclass(frozen=True)
class GearProfileResolution:
    profile: GearProfileDescriptor
    fallback_used: bool = False


@dataclass(frozen=True)
class Gear:
    id: str


@dataclass
class GearGroup:
    name: str
    gears: list[Gear] = field(default_factory=list)


@dataclass
class ApplicationHandle:
    """Result of a successful create-and-stop of a remote application"""

    name: str
    domain_id: str
    cartridge: CartridgeDescriptor
    gear_profile: GearProfileDescriptor
    fallback_profile_used: bool = False


@dataclass(frozen=True)
class NetworkAddress:
    hostname: str
    ip: str

    def __str__(self):
        return f"{self.hostname}/{self.ip}"
