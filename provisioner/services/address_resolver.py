import asyncio
from abc import ABC, abstractmethod
import socket

from shared.domain.cloud import NetworkAddress


class AddressResolver(ABC):
    @abstractmethod
    async def resolve(self, hostname: str) -> NetworkAddress:
        """
        Resolve hostname to a network address.

        Raises:
            OSError: hostname is not resolvable (yet)
        """
        pass


class DnsAddressResolver(AddressResolver):
    """Resolves through the system resolver without blocking the event loop"""

    async def resolve(self, hostname: str) -> NetworkAddress:
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(hostname, None, type=socket.SOCK_STREAM)
        except UnicodeError as e:
            # IDNA encoding rejects empty labels and labels over 63 characters
            raise socket.gaierror(f"Invalid hostname {hostname!r}: {e}") from e
        if not infos:
            raise socket.gaierror(f"No address found for {hostname}")
        # (family, type, proto, canonname, sockaddr)
        ip = infos[0][4][0]
        return NetworkAddress(hostname=hostname, ip=ip)
