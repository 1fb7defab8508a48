"""
Provision a single cloud build worker from the command line
"""

import argparse
import asyncio
import importlib
import logging
import os
import signal
import sys

from provisioner import config
from provisioner.services.exceptions import WorkerLifecycleError
from provisioner.services.retention import IdleRetentionService
from provisioner.services.workers import WorkerFleetService
from shared.security.credentials import load_cloud_credentials


handlers = [logging.StreamHandler(sys.stdout)]
if os.getenv("LOG_FILE"):
    handlers.append(logging.FileHandler(os.getenv("LOG_FILE")))

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=handlers,
)

logger = logging.getLogger(__name__)


def load_connection_factory(path: str):
    """Import 'package.module:callable' building a CloudConnection from credentials"""
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Connection factory must look like module:callable, got {path}")
    module = importlib.import_module(module_name)
    return getattr(module, attr)


async def main():
    parser = argparse.ArgumentParser(description="Provision a cloud build worker")
    parser.add_argument("framework", help="Framework of the builder, e.g. redhat-jbossas-7")
    parser.add_argument("--size", default=config.get_builder_size(), help="Gear size")
    parser.add_argument("--label", default="", help="Executor label")
    parser.add_argument(
        "--connection-factory",
        default=os.getenv("CLOUD_CONNECTION_FACTORY"),
        help="module:callable returning a CloudConnection (default: $CLOUD_CONNECTION_FACTORY)",
    )
    parser.add_argument(
        "--keep", action="store_true", help="Leave the worker running after it is ready"
    )
    args = parser.parse_args()

    if not args.connection_factory:
        parser.error("--connection-factory or CLOUD_CONNECTION_FACTORY is required")

    factory = load_connection_factory(args.connection_factory)
    connection = factory(load_cloud_credentials())
    fleet = WorkerFleetService(connection=connection)
    spec = fleet.new_spec(framework=args.framework, size_label=args.size, label=args.label)

    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(signum, shutdown.set)

    provisioning = fleet.provision_in_background(spec)
    shutdown_wait = asyncio.create_task(shutdown.wait())
    await asyncio.wait(
        {provisioning, shutdown_wait}, return_when=asyncio.FIRST_COMPLETED
    )
    if not provisioning.done():
        logger.info(f"Shutdown requested, cancelling provisioning of {spec.name}...")
        provisioning.cancel()
    shutdown_wait.cancel()

    try:
        worker = await provisioning
    except asyncio.CancelledError:
        sys.exit(1)
    except WorkerLifecycleError as e:
        logger.error(f"Failed to provision worker {spec.name}: {e}")
        sys.exit(1)

    print(f"name={worker.name}")
    print(f"unique_id={worker.get_unique_id()}")
    print(f"hostname={await worker.get_hostname()}")
    print(f"executors={worker.spec.executors}")
    print(f"description={worker.spec.description}")

    if args.keep:
        retention = IdleRetentionService(
            fleet=fleet, check_interval=config.get_retention_check_interval()
        )
        retention.start_monitoring()
        # Runs until a signal arrives or retention disposed of every worker
        while fleet.get_workers() and not shutdown.is_set():
            try:
                await asyncio.wait_for(shutdown.wait(), timeout=retention.check_interval)
            except asyncio.TimeoutError:
                pass
        await retention.stop()

    logger.info("Terminating workers...")
    await fleet.terminate_all()


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()
