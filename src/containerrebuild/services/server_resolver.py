"""Server lookup boundary for containerrebuild."""

from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import yaml

from containerrebuild.constants import DEFAULT_SSH_PORT, DEFAULT_USERNAME
from containerrebuild.errors import RebuildError
from containerrebuild.models import ServerTarget


class ServerResolver(Protocol):
    def resolve(self, address: str) -> Optional[ServerTarget]:
        ...


class InventoryServerResolver:
    """Resolves servers from a YAML inventory.

    The inventory holds a ``servers`` list; each entry needs ``ip`` and
    ``ssh_pwd`` and may set ``ssh_port``, ``status`` and ``username``.
    """

    def __init__(self, inventory_path: str, default_username: str = DEFAULT_USERNAME):
        self.inventory_path = inventory_path
        self.default_username = default_username
        self._servers: Optional[List[ServerTarget]] = None

    def resolve(self, address: str) -> Optional[ServerTarget]:
        for server in self.servers():
            if server.address == address and server.enabled:
                return server
        return None

    def servers(self) -> List[ServerTarget]:
        if self._servers is None:
            self._servers = [self._build_target(entry) for entry in self._load_entries()]
        return self._servers

    def _load_entries(self) -> List[Dict[str, Any]]:
        path = Path(self.inventory_path)
        if not path.exists():
            raise RebuildError(f"Server inventory not found: {self.inventory_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise RebuildError(f"Invalid server inventory '{self.inventory_path}': {exc}") from exc

        if parsed is None:
            return []
        if not isinstance(parsed, dict):
            raise RebuildError("Server inventory must contain a `servers` list at the root.")

        entries = parsed.get("servers") or []
        if not isinstance(entries, list):
            raise RebuildError("Server inventory must contain a `servers` list at the root.")

        for entry in entries:
            if not isinstance(entry, dict) or "ip" not in entry:
                raise RebuildError("Every inventory entry must be a mapping with an `ip` key.")
        return entries

    def _build_target(self, entry: Dict[str, Any]) -> ServerTarget:
        try:
            port = int(entry.get("ssh_port", DEFAULT_SSH_PORT))
        except (TypeError, ValueError) as exc:
            raise RebuildError(f"Invalid ssh_port for server {entry['ip']}: {entry.get('ssh_port')}") from exc

        return ServerTarget(
            address=str(entry["ip"]),
            port=port,
            password=str(entry.get("ssh_pwd") or ""),
            status=str(entry.get("status") or "enabled").lower(),
            username=str(entry.get("username") or self.default_username),
        )
