"""SSH session service for containerrebuild."""

import socket
import time
from typing import Callable, Optional

import paramiko

from containerrebuild.errors import RemoteConnectionError, RemoteExecutionError
from containerrebuild.errors_catalog import actionable_error
from containerrebuild.models import CommandResult


class RemoteSession:
    """Holds one authenticated SSH connection and runs commands sequentially.

    A session is opened once per reconciliation pass and must be closed
    exactly once; using it as a context manager guarantees that.
    """

    CHUNK_SIZE = 32768
    POLL_INTERVAL = 0.05

    def __init__(
        self,
        client,
        address: str,
        logger,
        command_timeout: Optional[float] = None,
    ):
        self.client = client
        self.address = address
        self.logger = logger
        self.command_timeout = command_timeout
        self.closed = False

    @classmethod
    def open(
        cls,
        address: str,
        port: int,
        username: str,
        password: str,
        logger,
        connect_timeout: Optional[float] = None,
        command_timeout: Optional[float] = None,
        client_factory: Callable = paramiko.SSHClient,
    ) -> "RemoteSession":
        client = client_factory()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        logger.debug("Opening SSH session to %s@%s:%s", username, address, port)

        try:
            client.connect(
                hostname=address,
                port=port,
                username=username,
                password=password,
                timeout=connect_timeout,
                allow_agent=False,
                look_for_keys=False,
            )
        except paramiko.AuthenticationException as exc:
            client.close()
            raise RemoteConnectionError(
                actionable_error(
                    "connection_failed",
                    address=address,
                    port=str(port),
                    reason="authentication rejected",
                )
            ) from exc
        except (paramiko.SSHException, OSError) as exc:
            client.close()
            raise RemoteConnectionError(
                actionable_error("connection_failed", address=address, port=str(port), reason=str(exc))
            ) from exc

        return cls(client, address=address, logger=logger, command_timeout=command_timeout)

    def execute(self, command: str) -> CommandResult:
        """Runs a command and drains its output streams before returning."""
        if self.closed:
            raise RemoteExecutionError(f"Session to {self.address} is already closed.")

        self.logger.debug("Executing on %s: %s", self.address, command)
        try:
            _stdin, stdout, _stderr = self.client.exec_command(command, timeout=self.command_timeout)
            raw_output, raw_error, exit_status = self._drain(stdout.channel)
        except socket.timeout as exc:
            raise RemoteExecutionError(
                actionable_error("command_timeout", timeout=str(self.command_timeout), command=command)
            ) from exc
        except (paramiko.SSHException, OSError, EOFError) as exc:
            raise RemoteExecutionError(
                f"Failed to execute command on {self.address}: {command}. {exc}"
            ) from exc

        output = raw_output.decode("utf-8", errors="replace")
        error_output = raw_error.decode("utf-8", errors="replace")
        if exit_status != 0:
            self.logger.debug(
                "Command exited with status %s on %s: %s %s",
                exit_status,
                self.address,
                command,
                error_output.strip(),
            )

        return CommandResult(
            command=command,
            exit_status=exit_status,
            stdout=output,
            stderr=error_output,
        )

    def _drain(self, channel):
        """Reads stdout and stderr together until the command exits.

        Both streams are emptied on every round so a command that fills the
        stderr window cannot stall the stdout read.
        """
        stdout_chunks = []
        stderr_chunks = []
        deadline = None
        if self.command_timeout is not None:
            deadline = time.monotonic() + self.command_timeout

        while True:
            received = False
            while channel.recv_ready():
                stdout_chunks.append(channel.recv(self.CHUNK_SIZE))
                received = True
            while channel.recv_stderr_ready():
                stderr_chunks.append(channel.recv_stderr(self.CHUNK_SIZE))
                received = True

            if channel.exit_status_ready() and not channel.recv_ready() and not channel.recv_stderr_ready():
                break
            if deadline is not None and time.monotonic() > deadline:
                raise socket.timeout()
            if not received:
                time.sleep(self.POLL_INTERVAL)

        return b"".join(stdout_chunks), b"".join(stderr_chunks), channel.recv_exit_status()

    def close(self):
        if self.closed:
            return
        self.closed = True
        try:
            self.client.close()
        finally:
            self.logger.debug("Closed SSH session to %s", self.address)

    def __enter__(self) -> "RemoteSession":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
