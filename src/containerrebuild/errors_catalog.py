"""Actionable error catalog for containerrebuild."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "server_not_found": {
        "what": "The server {address} is disabled or does not exist.",
        "next": "Check the inventory entry and its status before retrying.",
    },
    "connection_failed": {
        "what": "Could not connect to {address}:{port}: {reason}",
        "next": "Verify the SSH port, the password, and that the host is reachable.",
    },
    "listing_failed": {
        "what": "Could not list containers on {address}: {reason}",
        "next": "Confirm that docker is installed and the SSH user may run it.",
    },
    "config_not_found": {
        "what": "Account configuration not found: {path}",
        "next": "Regenerate the account configuration for {name} or remove the container.",
    },
    "invalid_container_name": {
        "what": "Container name '{name}' does not follow the '{prefix}<index>' convention.",
        "next": "Rename or remove containers that are not managed accounts.",
    },
    "command_timeout": {
        "what": "Remote command timed out after {timeout}s: {command}",
        "next": "Raise `--command-timeout` or inspect the host for a hung docker daemon.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
