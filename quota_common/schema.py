from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Mapping, Sequence, Tuple


class RequestTypeCode(str, Enum):
    """
    Language-independent request type codes.

    Display labels may be translated; control logic must branch on these.
    """

    ZONAL_ENABLEMENT = "ZONAL_ENABLEMENT"
    REGIONAL_ENABLEMENT = "REGIONAL_ENABLEMENT"
    REGION_ENABLEMENT_QUOTA_INCREASE = "REGION_ENABLEMENT_QUOTA_INCREASE"
    QUOTA_INCREASE = "QUOTA_INCREASE"
    QUOTA_DECREASE = "QUOTA_DECREASE"
    REGION_LIMIT_INCREASE = "REGION_LIMIT_INCREASE"
    RESERVED_INSTANCES = "RESERVED_INSTANCES"
    UNKNOWN = "UNKNOWN"


NOT_APPLICABLE = "N/A"
UNKNOWN_LABEL = "Unknown"
PENDING_STATUS = "Pending"
ZONAL_RAW_TYPE = "AZ Enablement/Whitelisting"

FINAL_HEADERS: Sequence[str] = (
    "Subscription ID",
    "Request Type",
    "VM Type",
    "Region",
    "Zone",
    "Cores",
    "Status",
)
ORIGINAL_ID_HEADER = "Original ID"
RDQUOTA_HEADER = "RDQuota"

# Headers that must all resolve for an input to be treated as already canonical.
CANONICAL_SHAPE_HEADERS: Sequence[str] = ("Subscription ID", "Request Type", "VM Type", "Region")

# Cell values that mark a header row; compared lower-cased.
ID_HEADER_VALUES: Sequence[str] = ("id", "rdquota", "quotaid")

# Raw-export column aliases, first match wins.
COLUMN_ALIASES: Mapping[str, Sequence[str]] = {
    "id": ("ID", "RDQuota", "QuotaId"),
    "Subscription ID": ("Subscription ID", "SubscriptionId"),
    "Region": ("Region", "Location"),
    "Request Type": ("UTC Ticket", "Ticket", "Request Type", "Type"),
    "Zone": ("Deployment Constraints", "Zone", "Zones"),
    "Cores": ("Event ID", "Cores", "Core Count"),
    "Status": ("Reason", "Status", "State"),
    "VM Type": ("SKU", "VM Type", "VmSize"),
}

# Canonical-input lookups for the original ticket id.
ORIGINAL_ID_ALIASES: Sequence[str] = (ORIGINAL_ID_HEADER, "ID", "RDQuota")

# Raw ticket text -> (final label, code).
REQUEST_TYPE_RENAMES: Mapping[str, Tuple[str, RequestTypeCode]] = {
    "AZ Enablement/Whitelisting": ("Zonal Enablement", RequestTypeCode.ZONAL_ENABLEMENT),
    "Region Enablement/Whitelisting": ("Region Enablement", RequestTypeCode.REGIONAL_ENABLEMENT),
    "Whitelisting/Quota Increase": (
        "Region Enablement & Quota Increase",
        RequestTypeCode.REGION_ENABLEMENT_QUOTA_INCREASE,
    ),
    "Quota Increase": ("Quota Increase", RequestTypeCode.QUOTA_INCREASE),
    "Quota Decrease": ("Quota Decrease", RequestTypeCode.QUOTA_DECREASE),
    "Region Limit Increase": ("Region Limit Increase", RequestTypeCode.REGION_LIMIT_INCREASE),
    "RI Enablement/Whitelisting": ("Reserved Instances", RequestTypeCode.RESERVED_INSTANCES),
}

STATUS_MAP: Mapping[str, str] = {
    "Fulfillment Actions Completed": "Fulfilled",
    "Verification Successful": "Approved",
    "Abandoned": "Backlogged",
    "-": "Pending Customer Response",
}

# Portuguese display labels per code. The second entry of a tuple is the
# wording used by older exports of the review tool.
PORTUGUESE_TYPE_LABELS: Mapping[RequestTypeCode, Tuple[str, ...]] = {
    RequestTypeCode.ZONAL_ENABLEMENT: ("Habilitação Zonal",),
    RequestTypeCode.REGIONAL_ENABLEMENT: ("Habilitação Regional",),
    RequestTypeCode.REGION_ENABLEMENT_QUOTA_INCREASE: (
        "Habilitação Regional & Aumento de Cota",
        "Habilitação Regional e Aumento de Cota",
    ),
    RequestTypeCode.QUOTA_INCREASE: ("Aumento de Cota",),
    RequestTypeCode.QUOTA_DECREASE: ("Diminuição de Cota",),
    RequestTypeCode.REGION_LIMIT_INCREASE: ("Aumento de Limite Regional", "Aumento de Limite de Região"),
    RequestTypeCode.RESERVED_INSTANCES: ("Instâncias Reservadas",),
}


def _display_type_table() -> Dict[str, RequestTypeCode]:
    """Build the lower-cased display label -> code table (EN + PT-BR)."""

    table: Dict[str, RequestTypeCode] = {}
    for label, code in REQUEST_TYPE_RENAMES.values():
        table[label.lower()] = code
    for code, labels in PORTUGUESE_TYPE_LABELS.items():
        for label in labels:
            table[label.lower()] = code
    return table


DISPLAY_TYPE_TO_CODE: Dict[str, RequestTypeCode] = _display_type_table()

PORTUGUESE_TRANSLATIONS: Mapping[str, str] = {
    # Headers
    "Subscription ID": "ID da Assinatura",
    "Request Type": "Tipo de Requisição",
    "VM Type": "Tipo de VM",
    "Region": "Região",
    "Zone": "Zona",
    "Cores": "Núcleos",
    "Status": "Status",
    "RDQuota": "RDQuota",
    # Request types
    "Zonal Enablement": "Habilitação Zonal",
    "Region Enablement": "Habilitação Regional",
    "Region Enablement & Quota Increase": "Habilitação Regional & Aumento de Cota",
    "Quota Increase": "Aumento de Cota",
    "Quota Decrease": "Diminuição de Cota",
    "Region Limit Increase": "Aumento de Limite Regional",
    "Reserved Instances": "Instâncias Reservadas",
    # Statuses
    "Approved": "Aprovado",
    "Fulfilled": "Atendido",
    "Backlogged": "Pendente (Backlogged)",
    "Pending Customer Response": "Aguardando Resposta do Cliente",
    "Pending": "Pendente",
    "N/A": "N/A",
}


def map_request_type(raw_type: str) -> Tuple[str, RequestTypeCode]:
    """Translate raw ticket vocabulary into (label, code); unmapped text is kept as the label."""

    if raw_type in REQUEST_TYPE_RENAMES:
        return REQUEST_TYPE_RENAMES[raw_type]
    return raw_type or UNKNOWN_LABEL, RequestTypeCode.UNKNOWN


def map_status(raw_status: str) -> str:
    return STATUS_MAP.get(raw_status, raw_status)


def map_display_type_to_code(display_type: str) -> RequestTypeCode:
    """Resolve an EN or PT-BR display label back to its code."""

    return DISPLAY_TYPE_TO_CODE.get((display_type or "").strip().lower(), RequestTypeCode.UNKNOWN)


@dataclass(frozen=True)
class CanonicalRecord:
    """A normalized quota request row."""

    subscription_id: str
    request_type: str
    vm_type: str
    region: str
    zone: str
    cores: str
    status: str
    original_id: str
    request_type_code: RequestTypeCode
    extras: Mapping[str, str] = field(default_factory=dict)

    def get(self, header: str, default: str = "") -> str:
        """Read a value by display header (canonical header, Original ID or an extras key)."""

        attr = HEADER_TO_FIELD.get(header)
        if attr is not None:
            return getattr(self, attr)
        return self.extras.get(header, default)

    def with_extras(self, **columns: str) -> "CanonicalRecord":
        merged = {**self.extras, **{str(k): str(v) for k, v in columns.items()}}
        return replace(self, extras=merged)

    def as_row(self, headers: Sequence[str] | None = None) -> Dict[str, str]:
        return {h: self.get(h) for h in (headers or FINAL_HEADERS)}


HEADER_TO_FIELD: Mapping[str, str] = {
    "Subscription ID": "subscription_id",
    "Request Type": "request_type",
    "VM Type": "vm_type",
    "Region": "region",
    "Zone": "zone",
    "Cores": "cores",
    "Status": "status",
    ORIGINAL_ID_HEADER: "original_id",
}

CategoryGroups = Dict[str, List[CanonicalRecord]]
