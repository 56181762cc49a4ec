"""Docker command builders and post-recreation checks for remote hosts."""

import shlex
import time
from typing import Callable

from containerrebuild.constants import (
    CONTAINER_IMAGE,
    CONTAINER_MEMORY,
    CONTAINER_PREFIX,
    LISTING_COMMAND,
    REMOTE_CONFIG_DIR,
    RESTART_POLICY,
)
from containerrebuild.models import CommandResult


class DockerCommandService:
    """Builds the docker commands issued over a remote session."""

    def __init__(
        self,
        logger,
        console,
        prefix: str = CONTAINER_PREFIX,
        image: str = CONTAINER_IMAGE,
        memory: str = CONTAINER_MEMORY,
        restart_policy: str = RESTART_POLICY,
        remote_config_dir: str = REMOTE_CONFIG_DIR,
    ):
        self.logger = logger
        self.console = console
        self.prefix = prefix
        self.image = image
        self.memory = memory
        self.restart_policy = restart_policy
        self.remote_config_dir = remote_config_dir

    def list_command(self) -> str:
        return LISTING_COMMAND

    def remove_command(self, name: str) -> str:
        return f"docker rm -f {shlex.quote(name)}"

    def run_command(self, index: str, port: int, remote_config_path: str) -> str:
        name = f"{self.prefix}{index}"
        mount = f"{self.remote_config_dir}:{self.remote_config_dir}"
        parts = [
            "docker",
            "run",
            "-d",
            f"--name={name}",
            "-v",
            mount,
            "-p",
            f"{port}:{port}",
            f"--memory={self.memory}",
            f"--restart={self.restart_policy}",
            self.image,
            "v2ray",
            f"-config={remote_config_path}",
        ]
        return " ".join(shlex.quote(part) for part in parts)

    def inspect_running_command(self, name: str) -> str:
        return f"docker inspect -f '{{{{.State.Running}}}}' {shlex.quote(name)}"

    def wait_until_running(
        self,
        name: str,
        execute: Callable[[str], CommandResult],
        max_retries: int = 5,
        backoff_seconds: float = 2.0,
    ) -> bool:
        self.console.print(f"[yellow]Waiting for {name} to start...[/yellow]")
        command = self.inspect_running_command(name)

        for attempt in range(1, max(1, max_retries) + 1):
            result = execute(command)
            if result.exit_status == 0 and result.stdout.strip().lower() == "true":
                self.logger.debug("Container %s is running (attempt %s).", name, attempt)
                return True
            if attempt < max_retries:
                time.sleep(backoff_seconds)

        self.logger.warning("Container %s did not reach a running state after %s checks.", name, max_retries)
        return False
