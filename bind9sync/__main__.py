"""
Main entry point for bind9sync.
"""

import asyncio
import logging
import signal
import sys
from pathlib import Path

import yaml
from pydantic import ValidationError

from bind9sync import __version__
from bind9sync.config.config import Config
from bind9sync.controller.controller import Controller
from bind9sync.models.errors import Bind9SyncError
from bind9sync.provider.bind import BindProvider, DryRunProvider, resolve_server
from bind9sync.provider.tsig import load_keyring
from bind9sync.source.proxmox import ProxmoxSource
from bind9sync.source.selector import AddressSelector
from bind9sync.utils.run_coordinator import RunCoordinator

LOG_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def setup_logging(level_name: str = "info") -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    log_level = LOG_LEVELS.get((level_name or "").strip().lower(), logging.INFO)
    logging.getLogger().setLevel(log_level)


async def run(config: Config) -> int:
    """
    Reconcile once (or forever in loop mode) while holding the run lock.

    Returns:
        int: Process exit code
    """
    logger = logging.getLogger("bind9sync")

    source = ProxmoxSource(timeout=config.agent_timeout)
    source.check_available()
    server = await resolve_server(config.server)

    # Cancel on SIGTERM/SIGHUP so the coordinator cleans up on the way out
    loop = asyncio.get_running_loop()
    task = asyncio.current_task()
    for sig in (signal.SIGTERM, signal.SIGHUP):
        loop.add_signal_handler(sig, task.cancel)

    with RunCoordinator(config.lock_file, config.tsig_key_b64) as coordinator:
        keyring, keyname = load_keyring(coordinator.key_path, config.tsig_key_name)

        provider_class = DryRunProvider if config.dry_run else BindProvider
        provider = provider_class(
            server,
            config.zone,
            port=config.port,
            keyring=keyring,
            keyname=keyname,
            query_timeout=config.query_timeout,
            query_tries=config.query_tries,
            update_timeout=config.update_timeout,
        )
        controller = Controller(
            source,
            AddressSelector(source, config.target_range),
            provider,
            config.zone,
            ttl=config.ttl,
            delete_stopped=config.delete_stopped,
            interval=config.parse_duration(config.interval),
        )

        logger.info(
            f"sync start: zone={config.zone} server={config.server}:{config.port} "
            f"network={config.network} dry_run={str(config.dry_run).lower()}"
        )

        if config.once:
            result = await controller.run_once()
            return result.exit_code

        await controller.run_reconciliation_loop()
    return 0


def main() -> None:
    """Console script entry point."""
    config_path = Path(sys.argv[1]) if len(sys.argv) > 1 else None

    try:
        config = Config.load(config_path)
    except (ValidationError, yaml.YAMLError, OSError, ValueError) as e:
        setup_logging()
        logging.getLogger("bind9sync").error(f"invalid configuration: {e}")
        sys.exit(1)

    setup_logging(config.log_level)
    logger = logging.getLogger("bind9sync")
    logger.debug(f"bind9sync v{__version__}")

    try:
        exit_code = asyncio.run(run(config))
    except Bind9SyncError as e:
        logger.error(str(e))
        sys.exit(1)
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Shutting down bind9sync")
        sys.exit(1)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
