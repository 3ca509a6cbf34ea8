"""Result sink interface."""

from typing import Protocol

from pkgtrust.models.schemas import PackageRecord


class ResultSink(Protocol):
    """Destination for scored packages.

    Writes are upserts keyed by (package name, version): scoring the same
    package version again replaces the earlier record.
    """

    def write(self, record: PackageRecord) -> None:
        """Persist one record."""
        ...

    def close(self) -> None:
        """Release any held resources."""
        ...
