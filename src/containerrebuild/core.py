import logging
import threading
from typing import Callable, Optional

from rich.console import Console

from .constants import CONTAINER_PREFIX, REMOTE_CONFIG_DIR
from .errors import ListingParseError, RebuildError, RemoteExecutionError, ResolutionError
from .errors_catalog import actionable_error
from .models import (
    ACCOUNT_OMITTED,
    ACCOUNT_RECREATED,
    ACCOUNT_UNVERIFIED,
    PASS_CANCELLED,
    PASS_ERROR,
    PASS_SKIPPED,
    AccountOutcome,
    ContainerRecord,
    PassResult,
    ServerTarget,
)
from .services.account_store import AccountConfigStore
from .services.docker_commands import DockerCommandService
from .services.listing_parser import ContainerListingParser
from .services.remote_session import RemoteSession
from .services.report import ReportService
from .services.server_resolver import ServerResolver

console = Console()
logger = logging.getLogger("containerrebuild")


class ContainerReconciler:
    """Replaces every managed container on one host with a fresh one.

    One call to :meth:`reconcile` is one pass: resolve the host, open a
    session, list containers, recreate each account that has a stored
    configuration, then release the session. Per-account problems are
    recorded on the result and never abort the pass.
    """

    def __init__(
        self,
        resolver: ServerResolver,
        account_store: AccountConfigStore,
        docker_service: Optional[DockerCommandService] = None,
        parser: Optional[ContainerListingParser] = None,
        session_opener: Callable[..., RemoteSession] = RemoteSession.open,
        connect_timeout: Optional[float] = None,
        command_timeout: Optional[float] = None,
        verify: bool = False,
        verify_retries: int = 5,
        verify_backoff_seconds: float = 2.0,
        cancel_event: Optional[threading.Event] = None,
        report_service: Optional[ReportService] = None,
        prefix: str = CONTAINER_PREFIX,
    ):
        self.resolver = resolver
        self.account_store = account_store
        self.docker_service = docker_service or DockerCommandService(
            logger=logger,
            console=console,
            prefix=prefix,
            remote_config_dir=getattr(account_store, "remote_config_dir", REMOTE_CONFIG_DIR),
        )
        self.parser = parser or ContainerListingParser(prefix=prefix)
        self.session_opener = session_opener
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self.verify = verify
        self.verify_retries = verify_retries
        self.verify_backoff_seconds = verify_backoff_seconds
        self.cancel_event = cancel_event or threading.Event()
        self.report_service = report_service or ReportService(report_file=None, logger=logger)
        self.current_operation: Optional[str] = None

    def cancel(self):
        self.cancel_event.set()

    def run(self, address: str) -> int:
        self.report_service.start()
        result = self.reconcile(address)
        try:
            self.report_service.write(result)
        except RebuildError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error(str(exc))
            return 1
        return result.exit_code

    def reconcile(self, address: str) -> PassResult:
        result = PassResult(host_address=address)
        session: Optional[RemoteSession] = None

        try:
            self.current_operation = "resolve"
            console.print(f"[blue]Resolving {address}...[/blue]")
            server = self._resolve(address)

            self.current_operation = "connect"
            console.print(f"[blue]Connecting {server.address}:{server.port}...[/blue]")
            session = self.session_opener(
                address=server.address,
                port=server.port,
                username=server.username,
                password=server.password,
                logger=logger,
                connect_timeout=self.connect_timeout,
                command_timeout=self.command_timeout,
            )
            console.print("[green]Connect success.[/green]")

            self._reconcile_accounts(session, server, result)

        except ResolutionError as exc:
            console.print(f"[yellow]{exc}[/yellow]")
            logger.info(str(exc))
            result.status = PASS_SKIPPED
        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user on %s", address)
            result.status = PASS_CANCELLED
        except RebuildError as exc:
            self._fail(result, exc)
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception(
                "Rebuild docker container failed on %s during %s",
                address,
                self.current_operation,
            )
            result.status = PASS_ERROR
            result.error = str(exc)
        finally:
            if session is not None:
                console.print(f"[dim]Releasing session to {address}...[/dim]")
                session.close()

        self._print_summary(result)
        return result

    def _resolve(self, address: str) -> ServerTarget:
        server = self.resolver.resolve(address)
        if server is None or not server.enabled:
            raise ResolutionError(actionable_error("server_not_found", address=address))
        return server

    def _reconcile_accounts(self, session: RemoteSession, server: ServerTarget, result: PassResult):
        self.current_operation = "list"
        console.print("[blue]Getting container status...[/blue]")
        try:
            listing = session.execute(self.docker_service.list_command())
        except RemoteExecutionError as exc:
            raise RemoteExecutionError(
                actionable_error("listing_failed", address=server.address, reason=str(exc))
            ) from exc
        if listing.exit_status != 0:
            logger.warning(
                "Listing command exited with status %s on %s: %s",
                listing.exit_status,
                server.address,
                listing.stderr.strip(),
            )

        def skip_line(_line: str, exc: ListingParseError):
            result.parse_failures += 1
            console.print(f"[yellow]Skipping listing line:[/yellow] {exc}")
            logger.warning("Skipping listing line on %s: %s", server.address, exc)

        for record in self.parser.parse(listing.stdout, on_error=skip_line):
            if self.cancel_event.is_set():
                console.print("[yellow]Cancellation requested. Stopping before the next account.[/yellow]")
                logger.warning("Pass on %s cancelled before processing all accounts.", server.address)
                result.status = PASS_CANCELLED
                return

            result.outcomes.append(self._reconcile_account(session, server, record))

    def _reconcile_account(
        self,
        session: RemoteSession,
        server: ServerTarget,
        record: ContainerRecord,
    ) -> AccountOutcome:
        self.current_operation = f"reconcile {record.name}"
        state = "running" if record.active else "stopped"
        console.print(f"[blue]Account {record.index}[/blue] ({record.name}) is {state}.")

        try:
            config = self.account_store.load(server.address, record.index, name=record.name)
        except RebuildError as exc:
            console.print(f"[yellow]Skipping {record.name}:[/yellow] {exc}")
            logger.warning("Skipping %s on %s: %s", record.name, server.address, exc)
            return AccountOutcome(
                name=record.name,
                index=record.index,
                status=ACCOUNT_OMITTED,
                active=record.active,
                error=str(exc),
            )

        logger.debug("Loaded %s with %s lines", config.path, len(config.lines))
        session.execute(self.docker_service.remove_command(record.name))
        session.execute(
            self.docker_service.run_command(
                record.index,
                server.port,
                self.account_store.remote_config_path(record.index),
            )
        )

        status = ACCOUNT_RECREATED
        if self.verify:
            running = self.docker_service.wait_until_running(
                record.name,
                session.execute,
                max_retries=self.verify_retries,
                backoff_seconds=self.verify_backoff_seconds,
            )
            if not running:
                status = ACCOUNT_UNVERIFIED
                console.print(f"[yellow]{record.name} was started but is not running yet.[/yellow]")

        console.print(f"[green]Recreated {record.name}.[/green]")
        return AccountOutcome(name=record.name, index=record.index, status=status, active=record.active)

    def _fail(self, result: PassResult, exc: Exception):
        console.print(f"[bold red]Error:[/bold red] {exc}")
        logger.error(
            "Rebuild docker container failed on %s during %s: %s",
            result.host_address,
            self.current_operation,
            exc,
        )
        result.status = PASS_ERROR
        result.error = str(exc)

    def _print_summary(self, result: PassResult):
        if result.status == PASS_SKIPPED:
            return

        summary = (
            f"{result.host_address}: {result.status}. Recreated {result.recreated}, "
            f"omitted {result.omitted}, skipped {result.parse_failures} malformed listing line(s)."
        )
        colour = "green" if result.exit_code == 0 else "red"
        console.print(f"[{colour}]{summary}[/{colour}]")
        logger.info(summary)
