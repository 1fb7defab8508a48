import asyncio
from dataclasses import dataclass, field
import logging

from provisioner.cloud.interface import CloudConnection, RemoteExecutionChannel


logger = logging.getLogger(__name__)


@dataclass
class TerminationResult:
    """What a best-effort termination managed to do"""

    channel_closed: bool = False
    application_destroyed: bool = False
    errors: list[str] = field(default_factory=list)


async def terminate_worker(
    connection: CloudConnection,
    connection_lock: asyncio.Lock,
    name: str,
    channel: RemoteExecutionChannel | None = None,
) -> TerminationResult:
    """
    Close the remote execution channel of a worker, then destroy its
    application. Never raises: failures are logged and reported in the result
    so cleanup paths cannot mask an earlier error.
    """
    result = TerminationResult()

    if channel is not None:
        try:
            if channel.is_open():
                logger.info(f"Closing the remote execution channel of {name}...")
                await channel.close()
                result.channel_closed = True
        except Exception as e:
            logger.error(f"Unable to close channel of worker {name}: {e}", exc_info=True)
            result.errors.append(f"channel: {e}")

    logger.info(f"Terminating cloud application {name}...")
    try:
        async with connection_lock:
            user = await connection.get_user()
            domain = await user.get_default_domain()
            app = await domain.get_application_by_name(name)
            if app is None:
                logger.warning(f"Unable to terminate application {name}: not found")
                result.errors.append("application: not found")
                return result
            await app.destroy()
        result.application_destroyed = True
        logger.info(f"Application {name} destroyed")
    except Exception as e:
        logger.error(f"Unable to terminate application {name}: {e}", exc_info=True)
        result.errors.append(f"application: {e}")

    return result
