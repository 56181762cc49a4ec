"""Configuration loader for containerrebuild."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from containerrebuild.errors import RebuildError


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    SUPPORTED_KEYS = {
        "inventory",
        "account_root",
        "username",
        "container_prefix",
        "image",
        "memory",
        "remote_config_dir",
        "command_timeout",
        "connect_timeout",
        "verify",
        "verify_retries",
        "verify_backoff_seconds",
        "verbose",
        "log_file",
        "report_file",
    }

    NUMERIC_KEYS = {"command_timeout", "connect_timeout", "verify_retries", "verify_backoff_seconds"}
    BOOLEAN_KEYS = {"verify", "verbose"}

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise RebuildError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise RebuildError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise RebuildError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise RebuildError(f"Unknown configuration keys: {unknown_list}")

        self._validate_types(parsed)
        return parsed

    def _validate_types(self, values: Dict[str, Any]):
        for key in sorted(self.NUMERIC_KEYS & set(values)):
            value = values[key]
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise RebuildError(f"Configuration key `{key}` must be a number, got {value!r}.")
            if value < 0:
                raise RebuildError(f"Configuration key `{key}` must not be negative.")

        for key in sorted(self.BOOLEAN_KEYS & set(values)):
            if not isinstance(values[key], bool):
                raise RebuildError(f"Configuration key `{key}` must be true or false.")
