"""Parser for `docker ps -a` tabular output."""

from typing import Callable, Iterator, Optional

from containerrebuild.constants import CONTAINER_PREFIX, RUNNING_TOKEN
from containerrebuild.errors import ListingParseError
from containerrebuild.errors_catalog import actionable_error
from containerrebuild.models import ContainerRecord


class ContainerListingParser:
    """Turns raw listing text into container records.

    The first line is the header row. The container name is the last
    whitespace-separated field and a container counts as running when the
    bare token ``Up`` appears among the fields of its line.
    """

    def __init__(self, prefix: str = CONTAINER_PREFIX, running_token: str = RUNNING_TOKEN):
        self.prefix = prefix
        self.running_token = running_token

    def data_lines(self, output: str) -> Iterator[str]:
        for position, line in enumerate(output.split("\n")):
            if position == 0:
                continue
            if not line.strip():
                continue
            yield line.rstrip("\r")

    def index_for(self, name: str) -> str:
        if not name.startswith(self.prefix):
            raise ListingParseError(
                actionable_error("invalid_container_name", name=name, prefix=self.prefix)
            )

        index = name[len(self.prefix):]
        if not index or not (index.isascii() and index.isdigit()):
            raise ListingParseError(
                actionable_error("invalid_container_name", name=name, prefix=self.prefix)
            )
        return index

    def parse_line(self, line: str) -> ContainerRecord:
        fields = line.split()
        if not fields:
            raise ListingParseError("Empty container listing line.")

        name = fields[-1]
        return ContainerRecord(
            name=name,
            index=self.index_for(name),
            active=self.running_token in fields,
            line=line,
        )

    def parse(
        self,
        output: str,
        on_error: Optional[Callable[[str, ListingParseError], None]] = None,
    ) -> Iterator[ContainerRecord]:
        """Yields well-formed records in listing order.

        Malformed lines are skipped and handed to ``on_error`` when given.
        """
        for line in self.data_lines(output):
            try:
                record = self.parse_line(line)
            except ListingParseError as exc:
                if on_error is not None:
                    on_error(line, exc)
                continue
            yield record
