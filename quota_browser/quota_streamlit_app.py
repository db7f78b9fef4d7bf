from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

import streamlit as st

from quota_browser.quota_data import (
    RDQUOTA_HEADERS,
    SUPPORTED_SUFFIXES,
    download_stem,
    filter_records,
    frame_to_csv_bytes,
    group_code,
    list_excel_sheets,
    load_text_from_upload,
    records_to_clipboard,
    records_to_excel_bytes,
    records_to_frame,
    records_to_rows,
    sorted_groups,
    translate_rows,
    translate_to_portuguese,
    visible_headers,
    visible_headers_for_mixed,
    with_rdquota,
)
from quota_common import (
    FINAL_HEADERS,
    CanonicalRecord,
    ConfigError,
    HeaderStrategy,
    TransformError,
    TransformOptions,
    load_options,
    transform,
)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "quota_config.yaml"
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
STRATEGY_LABELS = {
    HeaderStrategy.SCAN_WITH_FALLBACK: "Scan rows (fallback to first row)",
    HeaderStrategy.FIRST_ROW: "First row only",
}


@st.cache_data(show_spinner=False)
def _decode_upload(name: str, data: bytes, sheet_name: str | None) -> str:
    return load_text_from_upload(name, data, sheet_name=sheet_name)


def load_input_text() -> str:
    """Return the raw text buffer from an upload (takes precedence) or the paste box."""

    st.sidebar.header("Data Source")
    uploaded = st.sidebar.file_uploader(
        "Upload export",
        type=[s.lstrip(".") for s in SUPPORTED_SUFFIXES],
        key="quota_upload",
    )
    if uploaded is not None:
        data = uploaded.getvalue()
        sheet_name = None
        if uploaded.name.lower().endswith((".xlsx", ".xls", ".xlsm")):
            sheets = list_excel_sheets(data)
            if len(sheets) > 1:
                sheet_name = st.sidebar.selectbox("Worksheet", options=sheets, key="quota_sheet")
        try:
            text = _decode_upload(uploaded.name, data, sheet_name)
        except Exception as exc:  # pragma: no cover - handled in UI
            st.error(f"Failed to read uploaded file: {exc}")
            st.stop()
        st.session_state["raw_text"] = text

    return st.text_area(
        "Paste the export (tab, comma or semicolon separated)",
        key="raw_text",
        height=220,
    )


def load_options_sidebar() -> TransformOptions:
    st.sidebar.subheader("Transform options")
    try:
        defaults = load_options(DEFAULT_CONFIG_PATH if DEFAULT_CONFIG_PATH.exists() else None)
    except ConfigError as exc:
        st.sidebar.warning(f"Ignoring invalid config: {exc}")
        defaults = TransformOptions()

    strategies = list(HeaderStrategy)
    strategy = st.sidebar.selectbox(
        "Header detection",
        options=strategies,
        index=strategies.index(defaults.header_strategy),
        format_func=lambda s: STRATEGY_LABELS[s],
    )
    strip_code = st.sidebar.checkbox(
        "Strip region codes, e.g. East US (EUS)", value=defaults.strip_region_code
    )
    return TransformOptions(header_strategy=strategy, region_mode="strip_code" if strip_code else "trim")


def render_table_section(
    title: str,
    key: str,
    records: Sequence[CanonicalRecord],
    headers: Sequence[str],
    portuguese: bool,
    file_stem: str,
) -> None:
    """Render a table with copy payload and CSV/XLSX downloads; ``key`` only namespaces widgets."""

    rows = records_to_rows(records, headers)
    display_headers: List[str] = list(headers)
    if portuguese:
        display_headers, rows = translate_rows(rows, headers)

    st.dataframe(rows, use_container_width=True, hide_index=True, column_order=display_headers)

    tsv, html_table = records_to_clipboard(rows, display_headers)
    csv_col, xlsx_col, html_col = st.columns(3)
    with csv_col:
        st.download_button(
            "Download CSV",
            data=frame_to_csv_bytes(records_to_frame(records, headers)),
            file_name=f"{file_stem}.csv",
            mime="text/csv",
            key=f"{key}_csv",
            use_container_width=True,
        )
    with xlsx_col:
        st.download_button(
            "Download XLSX",
            data=records_to_excel_bytes(records, headers),
            file_name=f"{file_stem}.xlsx",
            mime=XLSX_MIME,
            key=f"{key}_xlsx",
            use_container_width=True,
        )
    with html_col:
        st.download_button(
            "Download HTML table",
            data=html_table.encode("utf-8"),
            file_name=f"{file_stem}.html",
            mime="text/html",
            key=f"{key}_html",
            use_container_width=True,
        )
    with st.expander(f"Copy {title} as text"):
        st.code(tsv, language=None)


def render_summary_cards(records: Sequence[CanonicalRecord], category_count: int) -> None:
    cols = st.columns(2)
    cols[0].metric("Total requests", f"{len(records)}")
    cols[1].metric("Categories", f"{category_count}")


def main() -> None:
    st.set_page_config(page_title="Quota Request Normalizer", layout="wide")
    st.title("Quota Request Normalizer")
    st.caption("Paste or upload a quota request export to normalize it and group it by request type.")

    raw_text = load_input_text()
    options = load_options_sidebar()
    view = st.sidebar.radio("View", options=["By category", "By RDQuota"], key="view_mode")
    portuguese = st.sidebar.toggle("Português (PT-BR)", key="portuguese")

    if st.button("Transform", type="primary"):
        try:
            st.session_state["result"] = transform(raw_text, options)
        except TransformError as exc:
            # The previous result, if any, stays on screen.
            st.error(f"Transformation Failed: {exc}")

    if "result" not in st.session_state:
        st.info("Paste data or upload a file, then click 'Transform'.")
        st.stop()

    result = st.session_state["result"]
    render_summary_cards(result.records, len(result.groups))

    search = st.text_input("Search", key="search_text").strip()

    if view == "By RDQuota":
        records = with_rdquota(result.records)
        headers = visible_headers_for_mixed(RDQUOTA_HEADERS, records)
        records = filter_records(records, headers, search)
        st.subheader(f"Unified table by RDQuota ({len(records)})")
        render_table_section(
            "Unified table", "unified", records, headers, portuguese, "Unified_Table_by_RDQuota"
        )
        groups = {label: with_rdquota(items) for label, items in result.groups.items()}
        base_headers: Sequence[str] = RDQUOTA_HEADERS
    else:
        groups = result.groups
        base_headers = FINAL_HEADERS

    for position, (label, items) in enumerate(sorted_groups(groups)):
        items = filter_records(items, base_headers, search)
        if not items:
            continue
        title = translate_to_portuguese(label) if portuguese else label
        with st.expander(f"{title} ({len(items)})", expanded=True):
            headers = visible_headers(base_headers, group_code(items))
            render_table_section(
                title, f"group_{position}", items, headers, portuguese, download_stem(label)
            )


if __name__ == "__main__":
    main()
