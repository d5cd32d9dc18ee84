from __future__ import annotations

import logging
import sys
from pathlib import Path
from time import perf_counter
from typing import Any, Dict, List, Optional

from .account import AzureAccount
from .config import RunConfig, dump_config, load_run_config
from .domain import GroupBy
from .estimate.base import LookupTableInput
from .export.csv import read_csv_dicts, write_estimates_csv, write_recommendations_csv
from .export.jsonl import read_jsonl, write_jsonl, write_jsonl_stream
from .logging import LogConfig, get_logger, setup_logging
from .util.errors import ConfigError, ExportError, as_exit_code
from .util.rich_summary import render_summary_table, summarize_results
from .util.time import parse_iso_utc

LOG = get_logger(__name__)


class _StepTimers:
    def __init__(self) -> None:
        self._starts: Dict[str, float] = {}

    def start(self, key: str) -> None:
        self._starts[key] = perf_counter()

    def finish(self, key: str) -> Optional[int]:
        started = self._starts.pop(key, None)
        if started is None:
            return None
        return int((perf_counter() - started) * 1000)


def _log_event(
    logger: Any,
    level: int,
    message: str,
    *,
    step: str,
    phase: str,
    timers: Optional[_StepTimers] = None,
    **extra: Any,
) -> None:
    duration_ms = None
    if timers is not None:
        if phase == "start":
            timers.start(step)
        elif phase in {"complete", "error"}:
            duration_ms = timers.finish(step)
    payload: Dict[str, Any] = {"step": step, "phase": phase, "event": f"{step}.{phase}"}
    if duration_ms is not None:
        payload["duration_ms"] = duration_ms
    payload.update(extra)
    logger.log(level, message, extra=payload)


def _account(cfg: RunConfig) -> AzureAccount:
    account = AzureAccount(cfg.azure)
    account.initialize_account()
    return account


def _write_results(results: List[Dict[str, Any]], output: Optional[Path], *, kind: str) -> str:
    """
    Write results to output (.jsonl or .csv) or stdout as JSONL. Returns a label for the summary.
    """
    if output is None:
        write_jsonl_stream(results, sys.stdout)
        return "stdout"
    suffix = output.suffix.lower()
    try:
        if suffix == ".csv":
            if kind == "recommendations":
                write_recommendations_csv(results, output)
            else:
                write_estimates_csv(results, output)
        elif suffix in {".jsonl", ".json"}:
            write_jsonl(results, output)
        else:
            raise ConfigError(f"Unsupported output format '{suffix}'; use .jsonl or .csv")
    except OSError as e:
        raise ExportError(f"Failed to write {output}: {e}") from e
    return str(output)


def _load_lookup_table(path: Path) -> List[LookupTableInput]:
    if not path.exists():
        raise ConfigError(f"Input file not found: {path}")
    if path.suffix.lower() == ".csv":
        rows = read_csv_dicts(path)
    else:
        rows = read_jsonl(path)
    return [LookupTableInput.from_mapping(row) for row in rows]


def cmd_validate_auth(cfg: RunConfig) -> int:
    account = _account(cfg)
    subscriptions = account.list_subscriptions()
    LOG.info(
        "Authentication validated",
        extra={"auth_method": account.auth_method, "subscriptions": len(subscriptions)},
    )
    # Concise success message (no secrets)
    print(f"OK: authentication validated; {len(subscriptions)} subscription(s) visible")
    return 0


def cmd_list_subscriptions(cfg: RunConfig) -> int:
    account = _account(cfg)
    for sub in account.list_subscriptions():
        print(f"{sub.subscription_id},{sub.display_name}")
    return 0


def cmd_recommendations(cfg: RunConfig) -> int:
    timers = _StepTimers()
    account = _account(cfg)
    _log_event(
        LOG,
        logging.INFO,
        "Fetching Advisor recommendations",
        step="recommendations",
        phase="start",
        timers=timers,
    )
    results = account.get_recommendations()
    _log_event(
        LOG,
        logging.INFO,
        "Fetched Advisor recommendations",
        step="recommendations",
        phase="complete",
        timers=timers,
        results=len(results),
    )
    label = _write_results(results, cfg.output, kind="recommendations")
    render_summary_table(
        enabled=cfg.summary,
        title="Advisor Recommendations",
        metrics=summarize_results(results),
        output=label,
    )
    return 0


def cmd_estimates(cfg: RunConfig) -> int:
    if not cfg.start or not cfg.end:
        raise ConfigError("estimates requires --start and --end")
    start = parse_iso_utc(cfg.start)
    end = parse_iso_utc(cfg.end)
    if end <= start:
        raise ConfigError("--end must be after --start")

    timers = _StepTimers()
    account = _account(cfg)
    _log_event(
        LOG,
        logging.INFO,
        "Fetching consumption estimates",
        step="estimates",
        phase="start",
        timers=timers,
        start=start.isoformat(),
        end=end.isoformat(),
        group_by=cfg.group_by,
    )
    results = account.get_estimates(start, end, GroupBy(cfg.group_by))
    _log_event(
        LOG,
        logging.INFO,
        "Fetched consumption estimates",
        step="estimates",
        phase="complete",
        timers=timers,
        results=len(results),
    )
    label = _write_results(results, cfg.output, kind="estimates")
    render_summary_table(
        enabled=cfg.summary,
        title="Consumption Estimates",
        metrics=summarize_results(results),
        output=label,
    )
    return 0


def cmd_estimate_input(cfg: RunConfig) -> int:
    if cfg.input is None:
        raise ConfigError("estimate-input requires --input")
    input_data = _load_lookup_table(cfg.input)
    results = AzureAccount.get_data_from_consumption_management_input_data(input_data)
    LOG.info("Estimated lookup table input", extra={"rows": len(input_data), "results": len(results)})
    label = _write_results(results, cfg.output, kind="estimates")
    render_summary_table(
        enabled=cfg.summary,
        title="Lookup Table Estimates",
        metrics=summarize_results(results),
        output=label,
    )
    return 0


COMMANDS = {
    "validate-auth": cmd_validate_auth,
    "list-subscriptions": cmd_list_subscriptions,
    "recommendations": cmd_recommendations,
    "estimates": cmd_estimates,
    "estimate-input": cmd_estimate_input,
}


def main(argv: Optional[List[str]] = None) -> None:
    try:
        command, cfg = load_run_config(argv=argv)
        setup_logging(LogConfig(level=cfg.log_level, json_logs=cfg.json_logs))
        LOG.debug("Resolved configuration", extra={"config": dump_config(cfg)})

        handler = COMMANDS.get(command)
        if handler is None:
            raise ConfigError(f"Unknown command: {command}")
        sys.exit(handler(cfg))
    except SystemExit:
        raise
    except BrokenPipeError:
        # Common when users pipe to `head` or similar tools.
        sys.exit(0)
    except Exception as e:
        # Map to consistent exit code and log
        setup_logging(LogConfig())
        LOG.error("Execution failed: %s", e, extra={"error": str(e)})
        sys.exit(as_exit_code(e))


if __name__ == "__main__":
    main()
