from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

from .cleaners import clean_region, clean_vm_type, strip_export_banner
from .config import TransformOptions
from .errors import EmptyInputError, InsufficientRowsError, MissingRequiredColumnError, NoValidRowsError
from .parsing import (
    ColumnResolver,
    RawRow,
    build_header_map,
    cell_at,
    detect_separator,
    is_canonical_shape,
    locate_header,
    split_lines,
    split_rows,
)
from .schema import (
    COLUMN_ALIASES,
    NOT_APPLICABLE,
    ORIGINAL_ID_ALIASES,
    PENDING_STATUS,
    UNKNOWN_LABEL,
    ZONAL_RAW_TYPE,
    CanonicalRecord,
    CategoryGroups,
    map_display_type_to_code,
    map_request_type,
    map_status,
)

LOGGER = logging.getLogger(__name__)


@dataclass
class TransformReport:
    separator: str
    header_index: int
    header_strategy_used: str
    input_mode: str
    data_row_count: int
    dropped_row_count: int
    category_counts: Dict[str, int] = field(default_factory=dict)


@dataclass
class TransformResult:
    records: List[CanonicalRecord]
    groups: CategoryGroups
    report: TransformReport


def normalize_canonical_rows(
    rows: Sequence[RawRow],
    resolver: ColumnResolver,
    options: TransformOptions | None = None,
) -> List[CanonicalRecord]:
    """
    Re-read rows that already carry the canonical headers.

    Status vocabulary is still mapped and the request-type code is derived from
    the (possibly Portuguese) display label. Rows without a subscription, VM
    type and region are dropped.
    """

    options = options or TransformOptions()
    original_id_index = resolver.resolve(ORIGINAL_ID_ALIASES)
    records: List[CanonicalRecord] = []

    for index, values in enumerate(rows):

        def get(header: str) -> str:
            return resolver.value(values, [header])

        request_type = get("Request Type") or UNKNOWN_LABEL
        record = CanonicalRecord(
            subscription_id=get("Subscription ID"),
            request_type=request_type,
            vm_type=get("VM Type"),
            region=clean_region(get("Region"), strip_code=options.strip_region_code),
            zone=get("Zone") or NOT_APPLICABLE,
            cores=get("Cores"),
            status=map_status(get("Status")) or PENDING_STATUS,
            original_id=cell_at(values, original_id_index) or f"pre-transformed-{index}",
            request_type_code=map_display_type_to_code(request_type),
        )
        if record.subscription_id or record.vm_type or record.region:
            records.append(record)
    return records


def _required_column(resolver: ColumnResolver, key: str, label: str) -> int:
    index = resolver.resolve(COLUMN_ALIASES[key])
    if index is None:
        raise MissingRequiredColumnError(label)
    return index


def normalize_raw_rows(
    rows: Sequence[RawRow],
    resolver: ColumnResolver,
    options: TransformOptions | None = None,
) -> List[CanonicalRecord]:
    """
    Normalize rows of a raw ticketing export.

    ID, Subscription ID and Region columns are required; the remaining fields
    fall back to empty strings when their column is absent.
    """

    options = options or TransformOptions()
    id_index = _required_column(resolver, "id", "ID")
    sub_index = _required_column(resolver, "Subscription ID", "Subscription ID")
    region_index = _required_column(resolver, "Region", "Region")
    optional = {
        key: resolver.resolve(COLUMN_ALIASES[key])
        for key in ("Request Type", "Zone", "Cores", "Status", "VM Type")
    }

    records: List[CanonicalRecord] = []
    for values in rows:
        raw_type = cell_at(values, optional["Request Type"])
        cores = cell_at(values, optional["Cores"])
        if raw_type == ZONAL_RAW_TYPE:
            cores = NOT_APPLICABLE
        elif cores == "-1":
            cores = ""

        label, code = map_request_type(raw_type)
        record = CanonicalRecord(
            subscription_id=cell_at(values, sub_index),
            request_type=label,
            vm_type=clean_vm_type(cell_at(values, optional["VM Type"])),
            region=clean_region(cell_at(values, region_index), strip_code=options.strip_region_code),
            zone=cell_at(values, optional["Zone"]) or NOT_APPLICABLE,
            cores=cores,
            status=map_status(cell_at(values, optional["Status"])),
            original_id=cell_at(values, id_index),
            request_type_code=code,
        )

        # Only rows that are blank apart from the defaulted zone are dropped.
        effectively_empty = not (record.subscription_id or record.vm_type or record.region or raw_type)
        if record.zone == NOT_APPLICABLE and effectively_empty:
            continue
        records.append(record)
    return records


def categorize(records: Iterable[CanonicalRecord]) -> CategoryGroups:
    """Group records by request-type label, keeping first-appearance order."""

    groups: CategoryGroups = {}
    for record in records:
        groups.setdefault(record.request_type, []).append(record)
    return groups


def _prepare_rows(raw_text: str) -> Tuple[List[RawRow], str]:
    cleaned = strip_export_banner(raw_text or "")
    if not cleaned.strip():
        raise EmptyInputError()

    lines = split_lines(cleaned)
    if len(lines) < 2:
        raise InsufficientRowsError()

    separator = detect_separator(lines)
    return split_rows(lines, separator), separator


def transform(
    raw_text: str,
    options: TransformOptions | None = None,
    *,
    log: Callable[[str], None] | None = None,
) -> TransformResult:
    """
    Convert a pasted or decoded export into canonical records grouped by category.

    The call either returns a complete result or raises a
    :class:`~quota_common.errors.TransformError` subclass.
    """

    options = options or TransformOptions()
    rows, separator = _prepare_rows(raw_text)
    LOGGER.debug("Detected separator %r across %d lines", separator, len(rows))

    header, strategy_used = locate_header(rows, options.header_strategy)
    data_rows = rows[header.index + 1 :]
    resolver = ColumnResolver(build_header_map(header.headers))
    LOGGER.debug("Header row %d located by %s strategy: %s", header.index, strategy_used, header.headers)

    if is_canonical_shape(resolver):
        input_mode = "canonical"
        records = normalize_canonical_rows(data_rows, resolver, options)
    else:
        input_mode = "raw"
        records = normalize_raw_rows(data_rows, resolver, options)

    if not records:
        raise NoValidRowsError()

    groups = categorize(records)
    report = TransformReport(
        separator=separator,
        header_index=header.index,
        header_strategy_used=strategy_used,
        input_mode=input_mode,
        data_row_count=len(data_rows),
        dropped_row_count=len(data_rows) - len(records),
        category_counts={label: len(items) for label, items in groups.items()},
    )
    message = (
        f"Transformed {len(records)} of {len(data_rows)} rows ({input_mode} input) "
        f"into {len(groups)} categories"
    )
    LOGGER.info(message)
    if log:
        log(message)
    return TransformResult(records=records, groups=groups, report=report)
