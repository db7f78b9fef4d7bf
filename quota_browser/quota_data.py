"""
Input decoding and display/export helpers for the quota request review app.

Uploaded files (Excel, CSV/TSV, HTML tables, Word tables) are flattened into a
tab-separated text buffer that `quota_common.transform` consumes. Normalized
records are turned back into tables for display, CSV/XLSX download and a
clipboard payload (plain TSV plus an HTML table for rich paste targets).
"""

from __future__ import annotations

import html
import logging
import re
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

import pandas as pd
import polars as pl
from bs4 import BeautifulSoup
from docx import Document

from quota_common.cleaners import clean_value
from quota_common.schema import (
    FINAL_HEADERS,
    PORTUGUESE_TRANSLATIONS,
    RDQUOTA_HEADER,
    CanonicalRecord,
    CategoryGroups,
    RequestTypeCode,
)

LOGGER = logging.getLogger(__name__)

EXCEL_SUFFIXES = (".xlsx", ".xls", ".xlsm")
TEXT_SUFFIXES = (".csv", ".tsv", ".txt")
HTML_SUFFIXES = (".html", ".htm")
DOCX_SUFFIXES = (".docx",)
SUPPORTED_SUFFIXES = EXCEL_SUFFIXES + TEXT_SUFFIXES + HTML_SUFFIXES + DOCX_SUFFIXES

RDQUOTA_HEADERS: Sequence[str] = (RDQUOTA_HEADER, *FINAL_HEADERS)
EXCEL_SHEET_NAME = "Quota Requests"
ROW_INDEX_COL = "__row_number__"


def _excel_source(data: Any) -> Any:
    """Return a rewindable Excel source for pandas."""

    if isinstance(data, BytesIO):
        data.seek(0)
        return data
    if isinstance(data, (bytes, bytearray)):
        return BytesIO(data)
    return data


def _cell_text(cell: Any) -> str:
    if cell is None or (isinstance(cell, float) and pd.isna(cell)):
        return ""
    return str(cell).strip()


def _rows_to_text(rows: Iterable[Sequence[Any]]) -> str:
    return "\n".join("\t".join(_cell_text(cell) for cell in row) for row in rows)


def frame_to_text(df: pd.DataFrame) -> str:
    """Flatten a header-less frame into tab-separated text, one line per row."""

    return _rows_to_text(df.itertuples(index=False, name=None))


def list_excel_sheets(data: Any) -> List[str]:
    with pd.ExcelFile(_excel_source(data)) as workbook:
        return [str(name) for name in workbook.sheet_names]


def load_excel_to_text(data: Any, sheet_name: str | int | None = None) -> str:
    """
    Read one worksheet as raw cells (no header inference) and return tab-separated text.

    Header detection is left to the transform so banner rows above the real
    header survive. Defaults to the first sheet.
    """

    with pd.ExcelFile(_excel_source(data)) as workbook:
        target = sheet_name if sheet_name is not None else workbook.sheet_names[0]
        df = workbook.parse(sheet_name=target, header=None, dtype=str, keep_default_na=False)
    LOGGER.debug("Read sheet %r with shape %s", target, df.shape)
    return frame_to_text(df)


def html_table_to_text(markup: str) -> str:
    """Return the first HTML table as tab-separated text, or "" when no table exists."""

    soup = BeautifulSoup(markup, "html.parser")
    table = soup.find("table")
    if table is None:
        return ""
    rows = []
    for tr in table.find_all("tr"):
        rows.append([cell.get_text(strip=True) for cell in tr.find_all(["th", "td"])])
    return _rows_to_text(rows)


def docx_table_to_text(data: bytes) -> str:
    """Return the first table of a Word document as tab-separated text."""

    document = Document(BytesIO(data))
    if not document.tables:
        return ""
    table = document.tables[0]
    return _rows_to_text([cell.text for cell in row.cells] for row in table.rows)


def load_text_from_upload(name: str, data: bytes, sheet_name: str | int | None = None) -> str:
    """
    Decode an uploaded file into the plain text buffer the transform expects.

    Dispatches on the file extension; raises ValueError for unsupported types.
    """

    suffix = Path(name or "").suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        return load_excel_to_text(data, sheet_name=sheet_name)
    if suffix in TEXT_SUFFIXES:
        return data.decode("utf-8-sig", errors="replace")
    if suffix in HTML_SUFFIXES:
        return html_table_to_text(data.decode("utf-8", errors="replace"))
    if suffix in DOCX_SUFFIXES:
        return docx_table_to_text(data)
    raise ValueError(
        f"Unsupported file type '{suffix or name}'. Supported: {', '.join(SUPPORTED_SUFFIXES)}"
    )


def visible_headers(headers: Sequence[str], code: RequestTypeCode | None) -> List[str]:
    """Zonal requests show Zone but not Cores; every other type shows Cores but not Zone."""

    zonal = code is RequestTypeCode.ZONAL_ENABLEMENT
    visible = []
    for header in headers:
        if header == "Cores" and zonal:
            continue
        if header == "Zone" and not zonal:
            continue
        visible.append(header)
    return visible


def visible_headers_for_mixed(headers: Sequence[str], records: Sequence[CanonicalRecord]) -> List[str]:
    """Keep Zone/Cores only when at least one record needs them."""

    if not records:
        return list(headers)
    show_zone = any(r.request_type_code is RequestTypeCode.ZONAL_ENABLEMENT for r in records)
    show_cores = any(r.request_type_code is not RequestTypeCode.ZONAL_ENABLEMENT for r in records)
    return [
        h for h in headers
        if not (h == "Zone" and not show_zone) and not (h == "Cores" and not show_cores)
    ]


def group_code(records: Sequence[CanonicalRecord]) -> RequestTypeCode:
    """Code shared by a category group (groups are keyed by label, so the first record decides)."""

    return records[0].request_type_code if records else RequestTypeCode.UNKNOWN


def with_rdquota(records: Iterable[CanonicalRecord]) -> List[CanonicalRecord]:
    """Copy records adding an ``RDQuota`` display column taken from the original id."""

    return [record.with_extras(**{RDQUOTA_HEADER: record.original_id}) for record in records]


def sorted_groups(groups: CategoryGroups) -> List[Tuple[str, List[CanonicalRecord]]]:
    return sorted(groups.items(), key=lambda item: item[0])


def download_stem(label: str, fallback: str = "quota_requests") -> str:
    """File-name-safe stem for a category label (unmapped labels may hold slashes)."""

    stem = re.sub(r"[^A-Za-z0-9_-]+", "_", label.replace("&", "and")).strip("_")
    return stem or fallback


def translate_to_portuguese(value: str) -> str:
    return PORTUGUESE_TRANSLATIONS.get(value, value)


def records_to_rows(records: Iterable[CanonicalRecord], headers: Sequence[str]) -> List[Dict[str, Any]]:
    """Project records onto display headers, cleaning every cell."""

    return [{h: clean_value(record.get(h)) for h in headers} for record in records]


def translate_rows(rows: Sequence[Mapping[str, Any]], headers: Sequence[str]) -> Tuple[List[str], List[Dict[str, str]]]:
    """Translate headers and cell values to Portuguese for display."""

    translated_headers = [translate_to_portuguese(h) for h in headers]
    translated = []
    for row in rows:
        translated.append(
            {
                t_header: translate_to_portuguese(str(row.get(header, "") or ""))
                for header, t_header in zip(headers, translated_headers)
            }
        )
    return translated_headers, translated


def records_to_frame(records: Iterable[CanonicalRecord], headers: Sequence[str] = FINAL_HEADERS) -> pl.DataFrame:
    rows = records_to_rows(records, headers)
    columns = {h: [str(row[h]) for row in rows] for h in headers}
    return pl.DataFrame(columns, schema={h: pl.Utf8 for h in headers})


def text_match_expr(column: str, term: str) -> pl.Expr:
    """Case-insensitive containment check used for quick text search."""

    return (
        pl.col(column)
        .cast(pl.Utf8)
        .fill_null("")
        .str.to_lowercase()
        .str.contains(term.lower(), literal=True)
    )


def _any_column_match(columns: Sequence[str], term: str) -> pl.Expr:
    expr = text_match_expr(columns[0], term)
    for column in columns[1:]:
        expr = expr | text_match_expr(column, term)
    return expr


def filter_frame(df: pl.DataFrame, term: str) -> pl.DataFrame:
    """Keep rows where any column contains the search term."""

    term = (term or "").strip()
    if not term or df.is_empty():
        return df
    return df.filter(_any_column_match(df.columns, term))


def filter_records(
    records: Sequence[CanonicalRecord], headers: Sequence[str], term: str
) -> List[CanonicalRecord]:
    """Keep records whose displayed cells contain the search term, preserving order."""

    records = list(records)
    term = (term or "").strip()
    if not term or not records or not headers:
        return records
    frame = records_to_frame(records, headers).with_row_index(ROW_INDEX_COL)
    keep = frame.filter(_any_column_match(list(headers), term))[ROW_INDEX_COL].to_list()
    return [records[i] for i in keep]


def frame_to_csv_bytes(df: pl.DataFrame, columns: Sequence[str] | None = None) -> bytes:
    """Serialize a Polars frame to UTF-8 CSV bytes for download."""

    if columns:
        df = df.select(list(columns))
    return df.write_csv().encode("utf-8")


def sanitize_for_excel(val: Any) -> str:
    """Prevent formula injection in Excel; negative numbers are left alone."""

    if val is None:
        return ""
    s = str(val)
    if s.startswith(("=", "+", "-", "@")):
        try:
            float(s)
        except ValueError:
            return "'" + s
    return s


def records_to_excel_bytes(
    records: Iterable[CanonicalRecord],
    headers: Sequence[str] = FINAL_HEADERS,
    sheet_name: str = EXCEL_SHEET_NAME,
) -> bytes:
    """Write records to a single-sheet XLSX workbook and return its bytes."""

    rows = records_to_rows(records, headers)
    df = pd.DataFrame(
        [[sanitize_for_excel(row[h]) for h in headers] for row in rows],
        columns=list(headers),
    )
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="xlsxwriter") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
        worksheet = writer.sheets[sheet_name]
        for idx, header in enumerate(headers):
            width = max([len(str(header))] + [len(str(row[header])) for row in rows])
            worksheet.set_column(idx, idx, min(width + 2, 60))
    return buffer.getvalue()


_CELL_STYLE = "border: 1px solid #000000; padding: 8px; text-align: center;"
_HEADER_STYLE = _CELL_STYLE + " background-color: #f3f4f6; font-weight: bold;"


def records_to_clipboard(rows: Sequence[Mapping[str, Any]], headers: Sequence[str]) -> Tuple[str, str]:
    """
    Build the clipboard payload for a table: (plain TSV, HTML table).

    Spreadsheet and mail clients pick the HTML flavor, plain editors the TSV.
    """

    tsv_lines = ["\t".join(headers)]
    tsv_lines.extend("\t".join(str(row.get(h, "") or "") for h in headers) for row in rows)

    head = "".join(f'<th style="{_HEADER_STYLE}">{html.escape(h)}</th>' for h in headers)
    body = "".join(
        "<tr>"
        + "".join(f'<td style="{_CELL_STYLE}">{html.escape(str(row.get(h, "") or ""))}</td>' for h in headers)
        + "</tr>"
        for row in rows
    )
    html_table = (
        '<table style="border-collapse: collapse;">'
        f"<thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>"
    )
    return "\n".join(tsv_lines), html_table


__all__ = [
    "RDQUOTA_HEADERS",
    "SUPPORTED_SUFFIXES",
    "docx_table_to_text",
    "download_stem",
    "filter_frame",
    "filter_records",
    "frame_to_csv_bytes",
    "frame_to_text",
    "group_code",
    "html_table_to_text",
    "list_excel_sheets",
    "load_excel_to_text",
    "load_text_from_upload",
    "records_to_clipboard",
    "records_to_excel_bytes",
    "records_to_frame",
    "records_to_rows",
    "sanitize_for_excel",
    "sorted_groups",
    "text_match_expr",
    "translate_rows",
    "translate_to_portuguese",
    "visible_headers",
    "visible_headers_for_mixed",
    "with_rdquota",
]
