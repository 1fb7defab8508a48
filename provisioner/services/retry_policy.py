from dataclasses import dataclass
import random

from provisioner.services.exceptions import WorkerLifecycleError


@dataclass
class ProvisionRetryPolicy:
    """
    Retry behaviour of the orchestrator when provisioning a worker fails.

    The lifecycle controller never retries by itself. Configuration errors
    (unknown cartridge, no gear profile, name conflicts) are never retried;
    transient cloud failures are retried with exponential backoff and jitter,
    each attempt on a fresh worker after the failed one was terminated.
    """

    max_attempts: int = 3
    base_delay: float = 10.0  # seconds
    max_delay: float = 120.0
    backoff_multiplier: float = 2.0

    def should_retry(self, error: Exception, attempt: int) -> bool:
        if attempt >= self.max_attempts - 1:
            return False
        if isinstance(error, WorkerLifecycleError):
            return error.retryable
        return False

    def calculate_delay(self, attempt: int) -> float:
        # Calculate exponential backoff
        exponential_delay = self.base_delay * (self.backoff_multiplier**attempt)

        # Cap at max_delay
        capped_delay = min(exponential_delay, self.max_delay)

        # Apply equal jitter: 50% base + 50% random
        half_delay = capped_delay / 2
        jittered_delay = half_delay + random.uniform(0, half_delay)

        return jittered_delay
