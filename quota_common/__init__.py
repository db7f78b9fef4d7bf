"""
Shared quota-request schema and transform pipeline used by both the command
line tool and the Streamlit review app.
"""

from .schema import (  # noqa: F401
    COLUMN_ALIASES,
    DISPLAY_TYPE_TO_CODE,
    FINAL_HEADERS,
    NOT_APPLICABLE,
    ORIGINAL_ID_HEADER,
    PORTUGUESE_TRANSLATIONS,
    RDQUOTA_HEADER,
    REQUEST_TYPE_RENAMES,
    STATUS_MAP,
    CanonicalRecord,
    RequestTypeCode,
    map_display_type_to_code,
    map_request_type,
    map_status,
)

from .cleaners import (  # noqa: F401
    clean_region,
    clean_value,
    clean_vm_type,
    strip_export_banner,
)

from .errors import (  # noqa: F401
    ConfigError,
    EmptyInputError,
    InsufficientRowsError,
    MissingHeaderError,
    MissingRequiredColumnError,
    NoValidRowsError,
    TransformError,
)

from .parsing import (  # noqa: F401
    ColumnResolver,
    HeaderInfo,
    HeaderStrategy,
    build_header_map,
    detect_separator,
    locate_header,
    locate_header_first_row,
    locate_header_row_scan,
    split_rows,
)

from .config import TransformOptions, load_options  # noqa: F401

from .normalize import (  # noqa: F401
    TransformReport,
    TransformResult,
    categorize,
    normalize_canonical_rows,
    normalize_raw_rows,
    transform,
)

__all__ = [
    "COLUMN_ALIASES",
    "DISPLAY_TYPE_TO_CODE",
    "FINAL_HEADERS",
    "NOT_APPLICABLE",
    "ORIGINAL_ID_HEADER",
    "PORTUGUESE_TRANSLATIONS",
    "RDQUOTA_HEADER",
    "REQUEST_TYPE_RENAMES",
    "STATUS_MAP",
    "CanonicalRecord",
    "RequestTypeCode",
    "map_display_type_to_code",
    "map_request_type",
    "map_status",
    "clean_region",
    "clean_value",
    "clean_vm_type",
    "strip_export_banner",
    "ConfigError",
    "EmptyInputError",
    "InsufficientRowsError",
    "MissingHeaderError",
    "MissingRequiredColumnError",
    "NoValidRowsError",
    "TransformError",
    "ColumnResolver",
    "HeaderInfo",
    "HeaderStrategy",
    "build_header_map",
    "detect_separator",
    "locate_header",
    "locate_header_first_row",
    "locate_header_row_scan",
    "split_rows",
    "TransformOptions",
    "load_options",
    "TransformReport",
    "TransformResult",
    "categorize",
    "normalize_canonical_rows",
    "normalize_raw_rows",
    "transform",
]
