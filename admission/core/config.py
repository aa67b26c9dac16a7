"""Admission engine configuration (env/ConfigMap driven, optional YAML file).

Recommended vars:
- ADMISSION_RULES=deny_env_vars,deny_env_from
- ADMISSION_UNSUPPORTED_KIND=allow|deny
- ADMISSION_MESSAGE_POLICY=first|combined
- ADMISSION_MAX_SUB_UNITS=256
- ADMISSION_OPERATIONS=CREATE,UPDATE
- ADMISSION_CONFIG_FILE=/etc/admission/config.yaml

Environment variables win over the file; the file wins over defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from admission.core.errors import ConfigError
from admission.core.models import Operation

UNSUPPORTED_KIND_POLICIES = ("allow", "deny")
MESSAGE_POLICIES = ("first", "combined")

DEFAULT_RULES: Tuple[str, ...] = ("deny_env_vars",)
DEFAULT_OPERATIONS: Tuple[Operation, ...] = (Operation.CREATE, Operation.UPDATE)
DEFAULT_MAX_SUB_UNITS = 256
MAX_SUB_UNITS_CEILING = 1024


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _split_csv(raw: Any) -> List[str]:
    if isinstance(raw, (list, tuple)):
        return [str(x).strip() for x in raw if str(x).strip()]
    return [x.strip() for x in str(raw or "").split(",") if x.strip()]


def _choice(name: str, value: str, choices: Tuple[str, ...]) -> str:
    v = (value or "").strip().lower()
    if v not in choices:
        raise ConfigError(f"{name} must be one of {', '.join(choices)}, got {value!r}")
    return v


def _operations(raw: List[str]) -> Tuple[Operation, ...]:
    out: List[Operation] = []
    for op in raw:
        try:
            out.append(Operation(op.upper()))
        except ValueError:
            raise ConfigError(f"unknown admission operation {op!r}") from None
    return tuple(out)


@dataclass(frozen=True)
class AdmissionConfig:
    # Ordered rule ids; order drives the representative denial message.
    rules: Tuple[str, ...] = DEFAULT_RULES

    # What to do with kinds the extractor cannot interpret.
    unsupported_kind_policy: str = "allow"

    # "first": first failing verdict wins. "combined": all failing messages joined.
    message_policy: str = "first"

    # Cap on containers examined per object.
    max_sub_units: int = DEFAULT_MAX_SUB_UNITS

    # Operations that are validated; anything else is admitted without running rules.
    operations: Tuple[Operation, ...] = DEFAULT_OPERATIONS

    log_level: str = "INFO"


def _load_file(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read admission config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"admission config file {path} must contain a mapping")
    return data


def load_admission_config(path: Optional[str] = None) -> AdmissionConfig:
    """
    Load admission configuration from env (and optionally a YAML file).

    File keys mirror the dataclass fields: `rules`, `unsupported_kind_policy`,
    `message_policy`, `max_sub_units`, `operations`, `log_level`.

    Raises ConfigError on invalid values; a misconfigured engine must fail at startup,
    not during a review.
    """
    file_path = path or (os.getenv("ADMISSION_CONFIG_FILE") or "").strip() or None
    data: Dict[str, Any] = _load_file(Path(file_path)) if file_path else {}

    rules = _split_csv(os.getenv("ADMISSION_RULES") or data.get("rules") or ",".join(DEFAULT_RULES))
    if not rules:
        raise ConfigError("at least one admission rule must be configured")

    unsupported = _choice(
        "ADMISSION_UNSUPPORTED_KIND",
        os.getenv("ADMISSION_UNSUPPORTED_KIND") or str(data.get("unsupported_kind_policy") or "allow"),
        UNSUPPORTED_KIND_POLICIES,
    )
    message_policy = _choice(
        "ADMISSION_MESSAGE_POLICY",
        os.getenv("ADMISSION_MESSAGE_POLICY") or str(data.get("message_policy") or "first"),
        MESSAGE_POLICIES,
    )

    file_cap = data.get("max_sub_units")
    try:
        default_cap = int(file_cap) if file_cap is not None else DEFAULT_MAX_SUB_UNITS
    except (TypeError, ValueError):
        raise ConfigError(f"max_sub_units must be an integer, got {file_cap!r}") from None
    max_sub_units = max(1, min(_env_int("ADMISSION_MAX_SUB_UNITS", default_cap), MAX_SUB_UNITS_CEILING))

    ops_raw = _split_csv(os.getenv("ADMISSION_OPERATIONS") or data.get("operations") or "")
    operations = _operations(ops_raw) if ops_raw else DEFAULT_OPERATIONS

    log_level = (os.getenv("LOG_LEVEL") or str(data.get("log_level") or "INFO")).strip().upper()

    return AdmissionConfig(
        rules=tuple(rules),
        unsupported_kind_policy=unsupported,
        message_policy=message_policy,
        max_sub_units=max_sub_units,
        operations=operations,
        log_level=log_level,
    )
