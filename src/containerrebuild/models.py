"""Shared domain models for containerrebuild."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .constants import DEFAULT_USERNAME, STATUS_DISABLED

PASS_OK = "ok"
PASS_SKIPPED = "skipped"
PASS_ERROR = "error"
PASS_CANCELLED = "cancelled"

ACCOUNT_RECREATED = "recreated"
ACCOUNT_UNVERIFIED = "unverified"
ACCOUNT_OMITTED = "omitted"


@dataclass(frozen=True)
class ServerTarget:
    """Connection parameters for one remote host."""

    address: str
    port: int
    password: str
    status: str = "enabled"
    username: str = DEFAULT_USERNAME

    @property
    def enabled(self) -> bool:
        return self.status != STATUS_DISABLED


@dataclass(frozen=True)
class ContainerRecord:
    """One container observed in a listing."""

    name: str
    index: str
    active: bool
    line: str = ""


@dataclass(frozen=True)
class AccountConfig:
    """Configuration lines stored for one account on one host."""

    host_address: str
    index: str
    path: str
    lines: Tuple[str, ...] = ()
    values: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CommandResult:
    command: str
    exit_status: int
    stdout: str
    stderr: str = ""


@dataclass(frozen=True)
class AccountOutcome:
    name: str
    index: str
    status: str
    active: bool = False
    error: Optional[str] = None


@dataclass
class PassResult:
    """Outcome of one reconciliation pass against a single host."""

    host_address: str
    status: str = PASS_OK
    outcomes: List[AccountOutcome] = field(default_factory=list)
    parse_failures: int = 0
    error: Optional[str] = None

    @property
    def recreated(self) -> int:
        return sum(
            1
            for outcome in self.outcomes
            if outcome.status in (ACCOUNT_RECREATED, ACCOUNT_UNVERIFIED)
        )

    @property
    def omitted(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == ACCOUNT_OMITTED)

    @property
    def exit_code(self) -> int:
        return 0 if self.status in (PASS_OK, PASS_SKIPPED) else 1
