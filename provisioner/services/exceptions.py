class WorkerLifecycleError(Exception):
    """Base class for failures reported by a worker lifecycle operation."""

    retryable = True

    def __init__(self, message: str, worker_name: str | None = None):
        super().__init__(message)
        self.worker_name = worker_name


class ProvisionError(WorkerLifecycleError):
    """Raised when the remote application cannot be created, sized or stopped."""

    def __init__(
        self,
        message: str,
        worker_name: str | None = None,
        application_created: bool = False,
    ):
        super().__init__(message, worker_name=worker_name)
        self.application_created = application_created


class CartridgeNotFoundError(ProvisionError):
    """Raised when no cartridge matches the requested framework."""

    retryable = False


class GearProfileUnavailableError(ProvisionError):
    """Raised when the domain offers no gear profile at all."""

    retryable = False


class ConnectError(WorkerLifecycleError):
    """Raised when the application cannot be located or its identity resolved."""


class ReadinessTimeoutError(WorkerLifecycleError, TimeoutError):
    """Raised when DNS did not propagate before the readiness deadline."""


class ReadinessAbandonedError(WorkerLifecycleError):
    """Raised when the work queue emptied before the worker became reachable."""


class HostnameLookupError(WorkerLifecycleError, LookupError):
    """Raised when the application URL of a worker cannot be determined."""


class InvalidTransitionError(WorkerLifecycleError):
    """Raised when an operation is not allowed in the current worker phase."""

    retryable = False


class WorkerNameConflictError(WorkerLifecycleError):
    """Raised when a worker with the same name is already live."""

    retryable = False
