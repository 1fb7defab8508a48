from shared.storage.in_memory_registry import InMemoryWorkerRegistry
from shared.storage.registry_interface import WorkerRegistryInterface


_registry: WorkerRegistryInterface | None = None


def get_worker_registry() -> WorkerRegistryInterface:
    """Process-wide registry used when no registry is injected"""
    global _registry
    if _registry is None:
        _registry = InMemoryWorkerRegistry()
    return _registry
