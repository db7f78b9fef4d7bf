from __future__ import annotations

import re
from typing import Any

_XIO_MARKER = re.compile(r"\s*\(XIO\)", re.IGNORECASE)
_REGION_CODE = re.compile(r"\s*\([A-Z]+\)\s*$")
_TITLE_PREFIX = re.compile(r"^Title:\s*", re.IGNORECASE)

BANNER_PREFIX = "Project: Quota"
BANNER_MARKERS = (
    "Server: https://dev.azure.com/capacityrequest",
    "Query: [None]",
    "List type: Flat",
)


def clean_vm_type(value: str) -> str:
    """Drop the ``(XIO)`` marker some exports append to SKU names."""

    if not value:
        return ""
    return _XIO_MARKER.sub("", value).strip()


def clean_region(value: str, *, strip_code: bool = False) -> str:
    """
    Normalize a region name.

    By default only trims. With ``strip_code=True`` a trailing parenthetical upper-case
    region code is removed as well (``"East US (EUS)"`` -> ``"East US"``).
    """

    if not value:
        return ""
    if strip_code:
        value = _REGION_CODE.sub("", value)
    return value.strip()


def clean_value(value: Any) -> Any:
    """Display/export boundary cleaner: None -> "", strings trimmed, anything else unchanged."""

    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return value


def _is_export_banner(line: str) -> bool:
    line = line.strip()
    return line.startswith(BANNER_PREFIX) and all(marker in line for marker in BANNER_MARKERS)


def strip_export_banner(text: str) -> str:
    """
    Remove ticketing-system export artifacts before parsing.

    Drops the Azure DevOps query banner on the first line and strips ``Title:``
    prefixes from every line.
    """

    if not text:
        return ""
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    if lines and _is_export_banner(lines[0]):
        lines = lines[1:]
    return "\n".join(_TITLE_PREFIX.sub("", line) for line in lines)
