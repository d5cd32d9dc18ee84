from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Dict, Iterable, List, TextIO

ESTIMATE_CSV_FIELDS = [
    "timestamp",
    "groupBy",
    "cloudProvider",
    "accountId",
    "accountName",
    "serviceName",
    "region",
    "usageType",
    "usageUnit",
    "cost",
    "usageAmount",
    "kilowattHours",
    "co2e",
    "estimateStatus",
]

RECOMMENDATION_CSV_FIELDS = [
    "cloudProvider",
    "accountId",
    "accountName",
    "region",
    "recommendationType",
    "recommendationDetail",
    "resourceId",
    "costSavings",
    "kilowattHourSavings",
    "co2eSavings",
    "estimateStatus",
]


def flatten_estimates(results: Iterable[Dict[str, Any]]) -> Iterable[Dict[str, Any]]:
    """
    Yield one row per service estimate. Results without serviceEstimates
    (offline lookup-table estimates) are yielded as-is.
    """
    for result in results:
        estimates = result.get("serviceEstimates")
        if estimates is None:
            yield result
            continue
        for estimate in estimates:
            row = dict(estimate)
            row["timestamp"] = result.get("timestamp")
            row["groupBy"] = result.get("groupBy")
            yield row


def _cell(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def write_rows_csv(rows: Iterable[Dict[str, Any]], stream: TextIO, fields: List[str]) -> int:
    writer = csv.writer(stream)
    writer.writerow(fields)
    count = 0
    for row in rows:
        writer.writerow([_cell(row.get(field)) for field in fields])
        count += 1
    return count


def write_estimates_csv(results: Iterable[Dict[str, Any]], path: Path) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        return write_rows_csv(flatten_estimates(results), f, ESTIMATE_CSV_FIELDS)


def write_recommendations_csv(results: Iterable[Dict[str, Any]], path: Path) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        return write_rows_csv(results, f, RECOMMENDATION_CSV_FIELDS)


def read_csv_dicts(path: Path) -> List[Dict[str, Any]]:
    with path.open("r", encoding="utf-8", newline="") as f:
        return [dict(row) for row in csv.DictReader(f)]
