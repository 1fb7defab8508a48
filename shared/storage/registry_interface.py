from abc import ABC, abstractmethod
from typing import Any, List, Optional


class WorkerRegistryInterface(ABC):
    """
    Abstract interface for the registry of live workers.

    The worker name doubles as the remote application name, so it is the
    registry key and must be unique among live workers.
    """

    @abstractmethod
    def register(self, name: str, worker: Any) -> None:
        """
        Register a live worker.

        Args:
            name: Worker name
            worker: Worker object owned by the orchestrator

        Raises:
            KeyError: if a worker with the same name is already live
        """
        pass

    @abstractmethod
    def unregister(self, name: str) -> Optional[Any]:
        """
        Remove a worker from the registry.

        Returns:
            Optional[Any]: Removed worker or None if it was not registered
        """
        pass

    @abstractmethod
    def get(self, name: str) -> Optional[Any]:
        pass

    @abstractmethod
    def contains(self, name: str) -> bool:
        pass

    @abstractmethod
    def get_all(self) -> List[Any]:
        pass
