import os

from provisioner.services.retry_policy import ProvisionRetryPolicy
from shared.domain.constants import DNS_INITIAL_DELAY, DNS_POLL_INTERVAL


def get_readiness_timeout_ms() -> int:
    """Readiness deadline for new workers, -1 disables it"""
    return int(os.getenv("BUILDER_TIMEOUT_MS", "300000"))


def get_builder_size() -> str:
    return os.getenv("BUILDER_SIZE", "small")


def get_builder_executors() -> int:
    return int(os.getenv("BUILDER_EXECUTORS", "1"))


def get_builder_idle_minutes() -> int:
    return int(os.getenv("BUILDER_IDLE_MINUTES", "15"))


def get_dns_initial_delay() -> float:
    return float(os.getenv("DNS_INITIAL_DELAY_SECONDS", str(DNS_INITIAL_DELAY)))


def get_dns_poll_interval() -> float:
    return float(os.getenv("DNS_POLL_INTERVAL_SECONDS", str(DNS_POLL_INTERVAL)))


def get_raise_on_abandoned_readiness() -> bool:
    """Raise instead of returning silently when the queue empties during the wait"""
    return os.getenv("RAISE_ON_ABANDONED_READINESS", "false").lower() in ("1", "true", "yes")


def get_retention_check_interval() -> float:
    return float(os.getenv("RETENTION_CHECK_INTERVAL_SECONDS", "60"))


def get_provision_retry_policy() -> ProvisionRetryPolicy:
    """Build the provisioning retry policy from environment config"""
    return ProvisionRetryPolicy(
        max_attempts=int(os.getenv("PROVISION_MAX_ATTEMPTS", "3")),
        base_delay=float(os.getenv("PROVISION_BASE_DELAY_SECONDS", "10")),
        max_delay=float(os.getenv("PROVISION_MAX_DELAY_SECONDS", "120")),
    )
