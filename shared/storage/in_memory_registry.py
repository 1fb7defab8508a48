from collections import OrderedDict
import logging
from typing import Any, List, Optional

from shared.storage.registry_interface import WorkerRegistryInterface


logger = logging.getLogger(__name__)


class InMemoryWorkerRegistry(WorkerRegistryInterface):
    """Live workers keyed by name, in registration order"""

    def __init__(self):
        self.workers: OrderedDict[str, Any] = OrderedDict()

    def register(self, name: str, worker: Any) -> None:
        if name in self.workers:
            raise KeyError(f"Worker {name} is already registered")
        self.workers[name] = worker
        logger.info(f"Registered worker {name} ({len(self.workers)} live)")

    def unregister(self, name: str) -> Optional[Any]:
        worker = self.workers.pop(name, None)
        if worker is not None:
            logger.info(f"Unregistered worker {name} ({len(self.workers)} live)")
        return worker

    def get(self, name: str) -> Optional[Any]:
        return self.workers.get(name)

    def contains(self, name: str) -> bool:
        return name in self.workers

    def get_all(self) -> List[Any]:
        return list(self.workers.values())
