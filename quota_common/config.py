from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml
from dotenv import load_dotenv

from .errors import ConfigError
from .parsing import HeaderStrategy

load_dotenv()

DEFAULT_CONFIG_PATH = Path("quota_config.yaml")
HEADER_STRATEGY_ENV = "QUOTA_HEADER_STRATEGY"
REGION_MODE_ENV = "QUOTA_REGION_MODE"
REGION_MODES = ("trim", "strip_code")


def _parse_header_strategy(value: Any) -> HeaderStrategy:
    if isinstance(value, HeaderStrategy):
        return value
    try:
        return HeaderStrategy(str(value).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(s.value for s in HeaderStrategy)
        raise ConfigError(f"header_strategy must be one of: {allowed} (got {value!r})") from exc


@dataclass(frozen=True)
class TransformOptions:
    """
    Per-call knobs for the transform.

    header_strategy: ``scan`` (row scan with first-row fallback) or ``first_row``.
    region_mode: ``trim`` keeps region text as entered; ``strip_code`` also
    removes a trailing parenthetical region code such as ``(EUS)``.
    """

    header_strategy: HeaderStrategy = HeaderStrategy.SCAN_WITH_FALLBACK
    region_mode: str = "trim"

    def __post_init__(self) -> None:
        object.__setattr__(self, "header_strategy", _parse_header_strategy(self.header_strategy))
        if self.region_mode not in REGION_MODES:
            raise ConfigError(f"region_mode must be one of: {', '.join(REGION_MODES)} (got {self.region_mode!r})")

    @property
    def strip_region_code(self) -> bool:
        return self.region_mode == "strip_code"


def options_from_mapping(data: Mapping[str, Any] | None) -> TransformOptions:
    """Build options from a plain mapping (YAML section, Streamlit state, ...)."""

    data = data or {}
    unknown = sorted(set(data) - {"header_strategy", "region_mode"})
    if unknown:
        raise ConfigError(f"Unknown transform option(s): {', '.join(unknown)}")

    kwargs: Dict[str, Any] = {}
    if data.get("header_strategy") is not None:
        kwargs["header_strategy"] = _parse_header_strategy(data["header_strategy"])
    if data.get("region_mode") is not None:
        kwargs["region_mode"] = str(data["region_mode"]).strip().lower()
    return TransformOptions(**kwargs)


def load_options(path: Path | str | None = None) -> TransformOptions:
    """
    Load transform options: defaults, then the YAML file, then environment overrides.

    A missing default config file is not an error; an explicitly passed path must exist.
    """

    data: Dict[str, Any] = {}
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if config_path.exists():
        with config_path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
        if not isinstance(raw, dict):
            raise ConfigError(f"Configuration in {config_path} must be a mapping")
        data.update(raw.get("transform", raw))
    elif path is not None:
        raise ConfigError(f"Configuration file not found: {config_path}")

    if os.getenv(HEADER_STRATEGY_ENV):
        data["header_strategy"] = os.environ[HEADER_STRATEGY_ENV]
    if os.getenv(REGION_MODE_ENV):
        data["region_mode"] = os.environ[REGION_MODE_ENV]
    return options_from_mapping(data)
