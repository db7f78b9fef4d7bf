from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from .errors import EmptyInputError, MissingHeaderError
from .schema import CANONICAL_SHAPE_HEADERS, COLUMN_ALIASES, ID_HEADER_VALUES

LOGGER = logging.getLogger(__name__)

SEPARATOR_SCAN_LIMIT = 20
DEFAULT_SEPARATOR = "\t"

RawRow = List[str]


def detect_separator(lines: Sequence[str]) -> str:
    """
    Pick the field delimiter from the first lines of the buffer.

    Uses the largest per-line count of each candidate. Tab beats comma beats
    semicolon on ties; pasted spreadsheet data defaults to tab.
    """

    max_tabs = max_commas = max_semicolons = 0
    for line in lines[:SEPARATOR_SCAN_LIMIT]:
        max_tabs = max(max_tabs, line.count("\t"))
        max_commas = max(max_commas, line.count(","))
        max_semicolons = max(max_semicolons, line.count(";"))

    if max_tabs >= max_commas and max_tabs >= max_semicolons and max_tabs > 0:
        return "\t"
    if max_commas >= max_semicolons and max_commas > 0:
        return ","
    if max_semicolons > 0:
        return ";"
    return DEFAULT_SEPARATOR


def split_lines(text: str) -> List[str]:
    """Split a buffer into its non-blank lines; leading cells keep their positions."""

    return [line for line in text.split("\n") if line.strip()]


def split_rows(lines: Iterable[str], separator: str) -> List[RawRow]:
    """Split lines into trimmed cells with double quotes removed."""

    return [[cell.strip().replace('"', "") for cell in line.split(separator)] for line in lines]


@dataclass(frozen=True)
class HeaderInfo:
    index: int
    headers: RawRow


class HeaderStrategy(str, Enum):
    """How the header row is located."""

    SCAN_WITH_FALLBACK = "scan"
    FIRST_ROW = "first_row"


def _is_id_cell(cell: str) -> bool:
    return cell.strip().lower() in ID_HEADER_VALUES


def locate_header_row_scan(rows: Sequence[RawRow]) -> HeaderInfo:
    """Return the first row holding an id-like cell; tolerates banner lines above the header."""

    for index, row in enumerate(rows):
        if any(_is_id_cell(cell) for cell in row):
            return HeaderInfo(index, list(row))
    raise MissingHeaderError()


def locate_header_first_row(rows: Sequence[RawRow]) -> HeaderInfo:
    """Treat row 0 as the header; it must still carry an ID/RDQuota/QuotaId column."""

    if not rows:
        raise EmptyInputError()
    headers = list(rows[0])
    resolver = ColumnResolver(build_header_map(headers))
    if resolver.resolve(COLUMN_ALIASES["id"]) is None:
        raise MissingHeaderError()
    return HeaderInfo(0, headers)


def locate_header(
    rows: Sequence[RawRow],
    strategy: HeaderStrategy = HeaderStrategy.SCAN_WITH_FALLBACK,
) -> Tuple[HeaderInfo, str]:
    """
    Locate the header row with the configured strategy.

    Returns the header info and the name of the strategy that succeeded
    (``"scan"`` or ``"first_row"``).
    """

    strategy = HeaderStrategy(strategy)
    if strategy is HeaderStrategy.FIRST_ROW:
        return locate_header_first_row(rows), "first_row"

    try:
        return locate_header_row_scan(rows), "scan"
    except MissingHeaderError:
        LOGGER.warning("Header row scan found no ID column; falling back to first-row header detection")
    return locate_header_first_row(rows), "first_row"


def build_header_map(headers: Iterable[str]) -> Dict[str, int]:
    """Lower-cased header -> column index; the last duplicate wins."""

    header_map: Dict[str, int] = {}
    for index, header in enumerate(headers):
        header_map[header.lower()] = index
    return header_map


class ColumnResolver:
    """Resolve alias lists against a located header row."""

    def __init__(self, header_map: Mapping[str, int]) -> None:
        self.header_map = dict(header_map)

    def resolve(self, aliases: Sequence[str]) -> int | None:
        for name in aliases:
            index = self.header_map.get(name.lower())
            if index is not None:
                return index
        return None

    def value(self, row: Sequence[str], aliases: Sequence[str]) -> str:
        return cell_at(row, self.resolve(aliases))


def cell_at(row: Sequence[str], index: int | None) -> str:
    if index is None or index >= len(row):
        return ""
    return (row[index] or "").strip()


def is_canonical_shape(resolver: ColumnResolver) -> bool:
    """True when the input already carries the canonical headers."""

    return all(resolver.resolve([header]) is not None for header in CANONICAL_SHAPE_HEADERS)
