import logging
import os
import signal
import threading

import click
from rich.logging import RichHandler

from .constants import (
    CONTAINER_IMAGE,
    CONTAINER_MEMORY,
    CONTAINER_PREFIX,
    DEFAULT_ACCOUNT_ROOT,
    DEFAULT_USERNAME,
    DEFAULT_CONFIG_FILE,
    DEFAULT_INVENTORY_FILE,
    REMOTE_CONFIG_DIR,
)
from .core import ContainerReconciler, console
from .errors import RebuildError
from .services.account_store import AccountConfigStore
from .services.config_loader import ConfigLoader
from .services.docker_commands import DockerCommandService
from .services.report import ReportService
from .services.server_resolver import InventoryServerResolver


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


def _optional_float(value):
    return float(value) if value is not None else None


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command()
@click.argument("ip")
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option(
    "--inventory",
    required=False,
    type=click.Path(),
    help=f"YAML server inventory (default: {DEFAULT_INVENTORY_FILE}).",
)
@click.option(
    "--account-root",
    required=False,
    type=click.Path(),
    help=f"Directory holding <ip>/config-<index>.txt files (default: {DEFAULT_ACCOUNT_ROOT}).",
)
@click.option(
    "--command-timeout",
    required=False,
    type=float,
    default=None,
    help="Seconds to wait for each remote command. Waits indefinitely when unset.",
)
@click.option(
    "--connect-timeout",
    required=False,
    type=float,
    default=None,
    help="Seconds to wait for the SSH handshake.",
)
@click.option(
    "--verify",
    is_flag=True,
    default=None,
    help="Poll each recreated container until docker reports it running.",
)
@click.option(
    "--verify-retries",
    required=False,
    type=int,
    default=None,
    help="Number of running-state checks per container (default: 5).",
)
@click.option(
    "--verify-backoff-seconds",
    required=False,
    type=float,
    default=None,
    help="Seconds between running-state checks (default: 2).",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.option("--report-file", type=click.Path(), help="Write a JSON pass report to this path")
def main(
    ip,
    config,
    inventory,
    account_root,
    command_timeout,
    connect_timeout,
    verify,
    verify_retries,
    verify_backoff_seconds,
    verbose,
    log_file,
    report_file,
):
    """Rebuild the proxy containers running on the server at IP."""
    logger = logging.getLogger("containerrebuild")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except RebuildError as exc:
        raise click.ClickException(str(exc)) from exc

    inventory = _resolve_option(inventory, config_values, "inventory", default=DEFAULT_INVENTORY_FILE)
    account_root = _resolve_option(account_root, config_values, "account_root", default=DEFAULT_ACCOUNT_ROOT)
    prefix = str(_resolve_option(None, config_values, "container_prefix", default=CONTAINER_PREFIX))
    image = str(_resolve_option(None, config_values, "image", default=CONTAINER_IMAGE))
    memory = str(_resolve_option(None, config_values, "memory", default=CONTAINER_MEMORY))
    remote_config_dir = str(
        _resolve_option(None, config_values, "remote_config_dir", default=REMOTE_CONFIG_DIR)
    )
    username = _resolve_option(None, config_values, "username")
    command_timeout = _optional_float(_resolve_option(command_timeout, config_values, "command_timeout"))
    connect_timeout = _optional_float(
        _resolve_option(connect_timeout, config_values, "connect_timeout", default=10.0)
    )
    verify = bool(_resolve_option(verify, config_values, "verify", default=False))
    verify_retries = int(_resolve_option(verify_retries, config_values, "verify_retries", default=5))
    verify_backoff_seconds = float(
        _resolve_option(verify_backoff_seconds, config_values, "verify_backoff_seconds", default=2.0)
    )
    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")
    report_file = _resolve_option(report_file, config_values, "report_file")

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    resolver = InventoryServerResolver(inventory, default_username=str(username or DEFAULT_USERNAME))

    cancel_event = threading.Event()
    _install_cancel_handler(cancel_event)

    reconciler = ContainerReconciler(
        resolver=resolver,
        account_store=AccountConfigStore(account_root, remote_config_dir=remote_config_dir),
        docker_service=DockerCommandService(
            logger=logger,
            console=console,
            prefix=prefix,
            image=image,
            memory=memory,
            remote_config_dir=remote_config_dir,
        ),
        connect_timeout=connect_timeout,
        command_timeout=command_timeout,
        verify=verify,
        verify_retries=verify_retries,
        verify_backoff_seconds=verify_backoff_seconds,
        cancel_event=cancel_event,
        report_service=ReportService(report_file=report_file, logger=logger),
        prefix=prefix,
    )

    raise SystemExit(reconciler.run(ip))


def _install_cancel_handler(cancel_event: threading.Event):
    if threading.current_thread() is not threading.main_thread():
        return

    def _handle(_signum, _frame):
        cancel_event.set()

    signal.signal(signal.SIGTERM, _handle)


if __name__ == "__main__":
    main()
