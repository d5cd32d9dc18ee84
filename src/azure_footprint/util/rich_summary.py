from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from rich.console import Console
from rich.table import Table


def summarize_results(results: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Count results and per-account service estimates for the summary table.
    """
    total = 0
    estimates = 0
    accounts = set()
    for result in results:
        total += 1
        service_estimates = result.get("serviceEstimates")
        if service_estimates is None:
            if result.get("accountId"):
                accounts.add(result["accountId"])
            continue
        for estimate in service_estimates:
            estimates += 1
            if estimate.get("accountId"):
                accounts.add(estimate["accountId"])
    return {"results": total, "service_estimates": estimates, "accounts": len(accounts)}


def render_summary_table(
    *,
    enabled: bool,
    title: str,
    metrics: Dict[str, Any],
    output: str,
    console: Optional[Console] = None,
) -> None:
    if not enabled:
        return
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Results", str(metrics.get("results", 0)))
    table.add_row("Service estimates", str(metrics.get("service_estimates", 0)))
    table.add_row("Subscriptions with data", str(metrics.get("accounts", 0)))
    table.add_row("Output", output)
    (console or Console(stderr=True)).print(table)
