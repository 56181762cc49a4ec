"""Account configuration file store."""

import os
import posixpath
from typing import Dict, List

from containerrebuild.constants import REMOTE_CONFIG_DIR
from containerrebuild.errors import ConfigNotFoundError, RebuildError
from containerrebuild.errors_catalog import actionable_error
from containerrebuild.models import AccountConfig


class AccountConfigStore:
    """Reads `<account_root>/<host>/config-<index>.txt` files."""

    def __init__(self, account_root: str, remote_config_dir: str = REMOTE_CONFIG_DIR):
        self.account_root = account_root
        self.remote_config_dir = remote_config_dir

    def config_path(self, host_address: str, index: str) -> str:
        return os.path.join(self.account_root, host_address, f"config-{index}.txt")

    def remote_config_path(self, index: str) -> str:
        return posixpath.join(self.remote_config_dir, f"config-{index}.json")

    def load(self, host_address: str, index: str, name: str = "") -> AccountConfig:
        path = self.config_path(host_address, index)
        if not os.path.isfile(path):
            raise ConfigNotFoundError(
                actionable_error("config_not_found", path=path, name=name or f"index {index}")
            )

        try:
            with open(path, "r", encoding="utf-8") as file_obj:
                lines = file_obj.read().splitlines()
        except (OSError, UnicodeDecodeError) as exc:
            raise RebuildError(f"Could not read account configuration '{path}': {exc}") from exc

        return AccountConfig(
            host_address=host_address,
            index=index,
            path=path,
            lines=tuple(lines),
            values=self._parse_values(lines),
        )

    @staticmethod
    def _parse_values(lines: List[str]) -> Dict[str, str]:
        values: Dict[str, str] = {}
        for line in lines:
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            for separator in (":", "="):
                if separator in stripped:
                    key, value = stripped.split(separator, 1)
                    values[key.strip()] = value.strip()
                    break
        return values
