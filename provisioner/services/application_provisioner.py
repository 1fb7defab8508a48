import asyncio
import logging

from provisioner.cloud.interface import CloudConnection
from provisioner.services.exceptions import ProvisionError
from provisioner.services.resolver import resolve_cartridge, resolve_gear_profile
from shared.domain.cloud import ApplicationHandle
from shared.domain.worker import WorkerSpec


logger = logging.getLogger(__name__)


class ApplicationProvisioner:
    """Creates the remote application backing a worker and leaves it stopped"""

    def __init__(self, connection: CloudConnection, connection_lock: asyncio.Lock):
        self.connection = connection
        self.connection_lock = connection_lock

    async def create_application(self, spec: WorkerSpec) -> ApplicationHandle:
        """
        Create application spec.name for its framework and size, then stop it.

        The builder only needs the cartridge installed; it must not run
        application code. No retry happens here.

        Raises:
            CartridgeNotFoundError: no cartridge matches spec.framework
            ProvisionError: listing, creation or stop failed
        """
        async with self.connection_lock:
            try:
                user = await self.connection.get_user()
                cartridges = await self.connection.get_standalone_cartridges()
                cartridge = resolve_cartridge(spec.framework, cartridges)

                domain = await user.get_default_domain()
                profiles = await domain.get_available_gear_profiles()
                resolution = resolve_gear_profile(spec.size_label, profiles)
            except ProvisionError as e:
                e.worker_name = spec.name
                logger.error(f"Unable to resolve resources for worker {spec.name}: {e}")
                raise
            except Exception as e:
                logger.error(f"Unable to list cloud resources for worker {spec.name}: {e}")
                raise ProvisionError(
                    f"Unable to list cloud resources for {spec.name}: {e}",
                    worker_name=spec.name,
                ) from e

            logger.info(
                f"Creating builder application {cartridge.name} {spec.name} {domain.id} "
                f"of size {resolution.profile.name} ..."
            )
            try:
                app = await domain.create_application(
                    spec.name, cartridge, resolution.profile
                )
            except Exception as e:
                logger.error(f"Failed to create application {spec.name}: {e}")
                raise ProvisionError(
                    f"Failed to create application {spec.name}: {e}",
                    worker_name=spec.name,
                ) from e

            logger.info(f"Stopping application on builder gear {spec.name} ...")
            try:
                await app.stop()
            except Exception as e:
                logger.error(f"Failed to stop application {spec.name}: {e}")
                raise ProvisionError(
                    f"Failed to stop application {spec.name}: {e}",
                    worker_name=spec.name,
                    application_created=True,
                ) from e

        return ApplicationHandle(
            name=spec.name,
            domain_id=domain.id,
            cartridge=cartridge,
            gear_profile=resolution.profile,
            fallback_profile_used=resolution.fallback_used,
        )
