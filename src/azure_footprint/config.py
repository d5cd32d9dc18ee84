from __future__ import annotations

import argparse
import json
import os
import warnings
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from .auth.providers import AUTH_METHODS
from .domain import GroupBy
from .util.time import utc_now_iso

# --------
# Defaults
# --------
DEFAULT_LOOKBACK_DAYS = 7
GROUP_BY_CHOICES = [g.value for g in GroupBy]
ALLOWED_CONFIG_KEYS = {
    "auth",
    "tenant_id",
    "client_id",
    "chunk_by_day",
    "subscription_chunks",
    "start",
    "end",
    "group_by",
    "output",
    "input",
    "summary",
    "json_logs",
    "log_level",
}
BOOL_CONFIG_KEYS = {"chunk_by_day", "summary", "json_logs"}
INT_CONFIG_KEYS = {"subscription_chunks"}
PATH_CONFIG_KEYS = {"output", "input"}
STR_CONFIG_KEYS = {"auth", "tenant_id", "client_id", "start", "end", "group_by", "log_level"}


@dataclass(frozen=True)
class AzureSettings:
    """
    Settings consumed by the Azure account facade.
    client_secret is only ever read from the environment.
    """

    auth: str = "auto"  # auto|client_secret|workload_identity
    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = field(default=None, repr=False)
    federated_token_file: Optional[str] = None
    chunk_by_day: bool = False
    subscription_chunks: Optional[int] = None


@dataclass(frozen=True)
class RunConfig:
    # General
    json_logs: bool = False
    log_level: str = "INFO"
    summary: bool = False
    output: Optional[Path] = None
    input: Optional[Path] = None

    # Query
    start: Optional[str] = None
    end: Optional[str] = None
    group_by: str = GroupBy.DAY.value

    # Azure
    azure: AzureSettings = field(default_factory=AzureSettings)

    # Internal/derived
    collected_at: str = field(default_factory=utc_now_iso)


def _parse_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(text) or {}
        elif path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            # Try YAML first then JSON
            try:
                data = yaml.safe_load(text) or {}
            except yaml.YAMLError:
                data = json.loads(text)
    except Exception as e:
        raise ValueError(f"Failed to parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Top-level config must be an object")
    return data


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    if not raw:
        return None
    return raw


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip().lower()
    if not raw:
        return None
    return raw in {"1", "true", "yes", "on"}


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        raw = value.strip().lower()
        if raw in {"1", "true", "yes", "on"}:
            return True
        if raw in {"0", "false", "no", "off"}:
            return False
    raise ValueError(f"Config field '{key}' must be a boolean")


def _coerce_int(key: str, value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return int(value)
        except ValueError:
            pass
    raise ValueError(f"Config field '{key}' must be an integer")


def _normalize_config_file(data: Dict[str, Any]) -> Dict[str, Any]:
    unknown = sorted(set(data.keys()) - ALLOWED_CONFIG_KEYS)
    if unknown:
        warnings.warn(f"Unknown config keys ignored: {', '.join(unknown)}")
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in ALLOWED_CONFIG_KEYS:
            continue
        if value is None:
            normalized[key] = None
            continue
        if key in BOOL_CONFIG_KEYS:
            normalized[key] = _coerce_bool(key, value)
        elif key in INT_CONFIG_KEYS:
            normalized[key] = _coerce_int(key, value)
        elif key in PATH_CONFIG_KEYS:
            if isinstance(value, (str, Path)):
                normalized[key] = value
            else:
                raise ValueError(f"Config field '{key}' must be a string path")
        elif key in STR_CONFIG_KEYS:
            # YAML parses bare ISO dates into date objects
            if key in {"start", "end"} and not isinstance(value, str):
                value = value.isoformat() if hasattr(value, "isoformat") else value
            if isinstance(value, str):
                normalized[key] = value
            else:
                raise ValueError(f"Config field '{key}' must be a string")
        else:
            normalized[key] = value
    auth = normalized.get("auth")
    if auth is not None:
        auth = str(auth).lower()
        if auth not in AUTH_METHODS:
            raise ValueError(f"Config field 'auth' must be one of: {', '.join(sorted(AUTH_METHODS))}")
        normalized["auth"] = auth
    group_by = normalized.get("group_by")
    if group_by is not None and str(group_by).lower() not in GROUP_BY_CHOICES:
        raise ValueError(f"Config field 'group_by' must be one of: {', '.join(GROUP_BY_CHOICES)}")
    return _compact_dict(normalized)


def _compact_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drop keys with None values so they don't override lower-precedence config.
    """
    return {k: v for k, v in data.items() if v is not None}


def _merge_dicts(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow merge: values in b override a.
    """
    merged = dict(a)
    merged.update(b)
    return merged


def _auth_mode_from_env() -> Optional[str]:
    raw = _env_str("AZURE_AUTH_MODE")
    if raw is None:
        return None
    mode = raw.lower()
    if mode in {"workload_identity", "workload-identity"}:
        return "workload_identity"
    if mode in {"client_secret", "client-secret", "default"}:
        return "client_secret"
    return mode


def _positive_or_none(value: Any) -> Optional[int]:
    if value is None:
        return None
    number = int(value)
    return number if number > 0 else None


def _azure_env() -> Dict[str, Any]:
    return _compact_dict(
        {
            "auth": _auth_mode_from_env(),
            "tenant_id": _env_str("AZURE_TENANT_ID"),
            "client_id": _env_str("AZURE_CLIENT_ID"),
            "chunk_by_day": _env_bool("AZURE_CONSUMPTION_CHUNKS_DAYS"),
            "subscription_chunks": _env_int("AZURE_SUBSCRIPTION_CHUNKS"),
        }
    )


def _build_azure_settings(merged: Dict[str, Any]) -> AzureSettings:
    auth = str(merged.get("auth") or "auto").lower()
    if auth not in AUTH_METHODS:
        raise ValueError(f"Auth method must be one of: {', '.join(sorted(AUTH_METHODS))}")
    return AzureSettings(
        auth=auth,
        tenant_id=merged.get("tenant_id"),
        client_id=merged.get("client_id"),
        client_secret=_env_str("AZURE_CLIENT_SECRET"),
        federated_token_file=_env_str("AZURE_FEDERATED_TOKEN_FILE"),
        chunk_by_day=bool(merged.get("chunk_by_day")),
        subscription_chunks=_positive_or_none(merged.get("subscription_chunks")),
    )


def load_azure_settings() -> AzureSettings:
    """
    Build AzureSettings from environment variables only.
    Used when the account facade is constructed without explicit settings.
    """
    return _build_azure_settings(_azure_env())


def default_date_range(now_utc: Optional[datetime] = None) -> Tuple[str, str]:
    now = now_utc or datetime.now(timezone.utc)
    end = now.replace(hour=0, minute=0, second=0, microsecond=0)
    start = end - timedelta(days=DEFAULT_LOOKBACK_DAYS)
    return start.date().isoformat(), end.date().isoformat()


def load_run_config(
    args: Optional[argparse.Namespace] = None,
    argv: Optional[list[str]] = None,
    subcommand: Optional[str] = None,
) -> Tuple[str, RunConfig]:
    """
    Build RunConfig by merging defaults, optional config file, env vars, and CLI args.
    Precedence (low -> high): defaults < config file < env < CLI.

    Returns:
      (command, RunConfig) where command is one of:
      validate-auth|list-subscriptions|recommendations|estimates|estimate-input
    """
    parser = argparse.ArgumentParser(prog="azure-fp", description="Azure cloud carbon footprint data collector")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # common flags builder
    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", type=Path, help="Optional YAML/JSON config file")
        p.add_argument(
            "--json-logs",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Enable JSON logs",
        )
        p.add_argument("--log-level", default=None, help="Log level (INFO, DEBUG, ...)")
        p.add_argument(
            "--auth",
            default=None,
            choices=sorted(AUTH_METHODS),
            help="Auth method (default: auto)",
        )
        p.add_argument("--tenant-id", default=None, help="Azure AD tenant id")
        p.add_argument("--client-id", default=None, help="App registration client id")

    def add_output(p: argparse.ArgumentParser) -> None:
        p.add_argument("--output", type=Path, default=None, help="Write results to .jsonl or .csv (default: stdout)")
        p.add_argument(
            "--summary",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Render a summary table on stderr",
        )

    p_val = subparsers.add_parser("validate-auth", help="Validate authentication setup")
    add_common(p_val)

    p_ls = subparsers.add_parser("list-subscriptions", help="List subscriptions visible to the credential")
    add_common(p_ls)

    p_rec = subparsers.add_parser("recommendations", help="Fetch Advisor cost recommendations")
    add_common(p_rec)
    add_output(p_rec)

    p_est = subparsers.add_parser("estimates", help="Fetch consumption data and estimate footprint")
    add_common(p_est)
    add_output(p_est)
    p_est.add_argument("--start", default=None, help="Start date (ISO-8601, default: 7 days ago)")
    p_est.add_argument("--end", default=None, help="End date (ISO-8601, default: today 00:00Z)")
    p_est.add_argument("--group-by", default=None, choices=GROUP_BY_CHOICES, help="Estimate grouping (default: day)")
    p_est.add_argument(
        "--chunk-by-day",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Fetch subscriptions and their per-day usage windows one request at a time",
    )
    p_est.add_argument(
        "--subscription-chunks",
        type=int,
        default=None,
        help="Fetch subscriptions concurrently in batches of this size (default: all at once)",
    )

    p_in = subparsers.add_parser("estimate-input", help="Estimate footprint from a lookup table file (offline)")
    add_common(p_in)
    add_output(p_in)
    p_in.add_argument("--input", type=Path, default=None, help="Lookup table input (.csv or .jsonl)")

    ns = args if args is not None else parser.parse_args(argv)
    command = ns.command if subcommand is None else subcommand

    default_start, default_end = default_date_range()
    base: Dict[str, Any] = {
        "auth": "auto",
        "chunk_by_day": False,
        "subscription_chunks": None,
        "start": default_start,
        "end": default_end,
        "group_by": GroupBy.DAY.value,
        "output": None,
        "input": None,
        "summary": False,
        "json_logs": False,
        "log_level": "INFO",
    }

    file_cfg: Dict[str, Any] = {}
    if getattr(ns, "config", None):
        file_cfg = _normalize_config_file(_parse_config_file(Path(ns.config)))

    env_cfg: Dict[str, Any] = _merge_dicts(
        _azure_env(),
        _compact_dict(
            {
                "start": _env_str("AZ_FP_START"),
                "end": _env_str("AZ_FP_END"),
                "group_by": _env_str("AZ_FP_GROUP_BY"),
                "output": _env_str("AZ_FP_OUTPUT"),
                "summary": _env_bool("AZ_FP_SUMMARY"),
                "json_logs": _env_bool("AZ_FP_JSON_LOGS"),
                "log_level": _env_str("AZ_FP_LOG_LEVEL"),
            }
        ),
    )

    cli_cfg: Dict[str, Any] = _compact_dict(
        {
            "auth": getattr(ns, "auth", None),
            "tenant_id": getattr(ns, "tenant_id", None),
            "client_id": getattr(ns, "client_id", None),
            "chunk_by_day": getattr(ns, "chunk_by_day", None),
            "subscription_chunks": getattr(ns, "subscription_chunks", None),
            "start": getattr(ns, "start", None),
            "end": getattr(ns, "end", None),
            "group_by": getattr(ns, "group_by", None),
            "output": getattr(ns, "output", None),
            "input": getattr(ns, "input", None),
            "summary": getattr(ns, "summary", None),
            "json_logs": getattr(ns, "json_logs", None),
            "log_level": getattr(ns, "log_level", None),
        }
    )

    merged = _merge_dicts(base, _merge_dicts(file_cfg, _merge_dicts(env_cfg, cli_cfg)))

    group_by = str(merged.get("group_by") or GroupBy.DAY.value).lower()
    if group_by not in GROUP_BY_CHOICES:
        raise ValueError(f"group_by must be one of: {', '.join(GROUP_BY_CHOICES)}")

    cfg = RunConfig(
        json_logs=bool(merged["json_logs"]),
        log_level=(merged.get("log_level") or "INFO").upper(),
        summary=bool(merged["summary"]),
        output=Path(merged["output"]) if merged.get("output") else None,
        input=Path(merged["input"]) if merged.get("input") else None,
        start=str(merged["start"]) if merged.get("start") else None,
        end=str(merged["end"]) if merged.get("end") else None,
        group_by=group_by,
        azure=_build_azure_settings(merged),
    )
    return command, cfg


def dump_config(cfg: RunConfig) -> Dict[str, Any]:
    return {
        "json_logs": cfg.json_logs,
        "log_level": cfg.log_level,
        "summary": cfg.summary,
        "output": str(cfg.output) if cfg.output else None,
        "input": str(cfg.input) if cfg.input else None,
        "start": cfg.start,
        "end": cfg.end,
        "group_by": cfg.group_by,
        "auth": cfg.azure.auth,
        "tenant_id": cfg.azure.tenant_id,
        "client_id": cfg.azure.client_id,
        "chunk_by_day": cfg.azure.chunk_by_day,
        "subscription_chunks": cfg.azure.subscription_chunks,
        "collected_at": cfg.collected_at,
    }
