from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import uuid4

from shared.domain.constants import NO_TIMEOUT
from shared.utils.naming import sanitize_framework


class WorkerPhase(Enum):
    """Lifecycle phases of a cloud build worker"""

    NEW = "new"
    PROVISIONING = "provisioning"
    AWAITING_READY = "awaiting_ready"
    READY = "ready"
    FAILED = "failed"
    TERMINATING = "terminating"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class WorkerSpec:
    """Immutable request for one build worker"""

    name: str
    framework: str
    size_label: str
    readiness_timeout_ms: int = NO_TIMEOUT
    label: str = ""
    executors: int = 1
    idle_minutes: int = 15

    def __post_init__(self):
        if not self.name:
            raise ValueError("Worker name must not be empty")
        if not self.framework:
            raise ValueError("Worker framework must not be empty")
        if self.readiness_timeout_ms < 0 and self.readiness_timeout_ms != NO_TIMEOUT:
            raise ValueError(
                f"readiness_timeout_ms must be >= 0 or {NO_TIMEOUT}, got {self.readiness_timeout_ms}"
            )
        if self.executors < 1:
            raise ValueError(f"executors must be >= 1, got {self.executors}")

    @property
    def description(self) -> str:
        return f"Builder for {self.label or self.framework}"

    @classmethod
    def for_framework(cls, framework: str, size_label: str, **kwargs) -> "WorkerSpec":
        """Build a spec whose name is the sanitized framework plus a random suffix"""
        name = f"{sanitize_framework(framework)}{uuid4().hex[:8]}"
        return cls(name=name, framework=framework, size_label=size_label, **kwargs)


@dataclass
class WorkerState:
    """Mutable state owned by the lifecycle controller of one worker"""

    phase: WorkerPhase = WorkerPhase.NEW
    unique_id: str | None = None
    address: str | None = None
    last_state_change: datetime = field(default_factory=datetime.now)

    @property
    def has_connected(self) -> bool:
        return self.unique_id is not None
