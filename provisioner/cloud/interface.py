from abc import ABC, abstractmethod
from typing import List, Optional

from shared.domain.cloud import CartridgeDescriptor, GearGroup, GearProfileDescriptor


class CloudApplication(ABC):
    """A remote application instance hosting one build worker"""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def stop(self) -> None:
        pass

    @abstractmethod
    async def destroy(self) -> None:
        pass

    @abstractmethod
    async def get_application_url(self) -> str:
        """Public URL of the application, e.g. http://name-domain.example.com/"""
        pass

    @abstractmethod
    async def get_gear_groups(self) -> List[GearGroup]:
        pass


class CloudDomain(ABC):
    """Account-scoped namespace under which applications are created"""

    @property
    @abstractmethod
    def id(self) -> str:
        pass

    @abstractmethod
    async def get_available_gear_profiles(self) -> List[GearProfileDescriptor]:
        pass

    @abstractmethod
    async def create_application(
        self,
        name: str,
        cartridge: CartridgeDescriptor,
        gear_profile: GearProfileDescriptor,
    ) -> CloudApplication:
        pass

    @abstractmethod
    async def get_application_by_name(self, name: str) -> Optional[CloudApplication]:
        """
        Look up an application of this domain.

        Returns:
            Optional[CloudApplication]: Application or None if no such application exists
        """
        pass


class CloudUser(ABC):
    @abstractmethod
    async def get_default_domain(self) -> CloudDomain:
        pass


class CloudConnection(ABC):
    """
    Client of the cloud control plane.

    Implementations are not expected to be safe for concurrent use; callers
    serialize access through a shared lock.
    """

    @abstractmethod
    async def get_user(self) -> CloudUser:
        pass

    @abstractmethod
    async def get_standalone_cartridges(self) -> List[CartridgeDescriptor]:
        pass


class WorkQueueObserver(ABC):
    @abstractmethod
    def has_pending_work(self) -> bool:
        """True while there is queued work that may need this worker"""
        pass


class RemoteExecutionChannel(ABC):
    """Remote execution session (e.g. SSH) opened on a ready worker"""

    @abstractmethod
    def is_open(self) -> bool:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass


class AlwaysPendingQueueObserver(WorkQueueObserver):
    """Observer for callers without a work queue: waiting is always worthwhile"""

    def has_pending_work(self) -> bool:
        return True
