from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence


class ExportTarget(ABC):
    """A tabular document store that registration exports are written to.

    Implementations raise ``DependencyError`` when the backing service fails.
    """

    @abstractmethod
    def create_document(self, title: str) -> str:
        """Create an empty document and return its id."""

    @abstractmethod
    def write_range(self, document_id: str, range_: str, rows: Sequence[Sequence[str]]) -> None:
        """Overwrite cells starting at ``range_`` (``Sheet!A1`` notation)."""

    @abstractmethod
    def document_url(self, document_id: str) -> str:
        """Return a URL a person can open to view the document."""


def split_range(range_: str) -> tuple[str, str]:
    sheet, sep, cell = range_.partition("!")
    if not sep or not sheet or not cell:
        raise ValueError(f"invalid range: {range_!r}")
    return sheet, cell.upper()
