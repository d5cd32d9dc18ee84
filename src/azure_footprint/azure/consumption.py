from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from ..domain import GroupBy
from ..estimate.base import ConsumptionEstimator, EstimationResult, LookupTableInput, UsageRow
from ..logging import get_logger
from ..util.errors import map_azure_error
from ..util.serialization import sanitize_for_json
from ..util.time import DateRange, format_iso_utc, parse_iso_utc, split_into_days

LOG = get_logger(__name__)

USAGE_EXPAND = "properties/meterDetails,properties/additionalInfo"


def _first(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def usage_row_from_detail(detail: Any, subscription_id: str, subscription_name: str) -> UsageRow:
    """
    Normalize a legacy or modern Consumption usage detail into a flat UsageRow.
    Legacy details carry meter fields under meter_details; modern ones inline them.
    """
    data = sanitize_for_json(detail)
    if not isinstance(data, dict):
        data = {}
    kind = str(data.get("kind") or "legacy").lower()
    meter = data.get("meter_details") or {}

    if kind == "modern":
        cost = _first(data, "cost_in_billing_currency", "cost_in_usd", "payg_cost_in_billing_currency")
        region = _first(data, "resource_location_normalized", "resource_location")
        meter_category = _first(data, "meter_category")
        meter_name = _first(data, "meter_name")
        usage_unit = _first(data, "unit_of_measure")
        instance_name = _first(data, "instance_name")
    else:
        cost = _first(data, "cost", "cost_in_billing_currency")
        region = _first(data, "resource_location")
        meter_category = _first(meter, "meter_category")
        meter_name = _first(meter, "meter_name")
        usage_unit = _first(meter, "unit_of_measure")
        instance_name = _first(data, "resource_name", "instance_name", "resource_id")

    return {
        "kind": kind,
        "timestamp": data.get("date"),
        "subscription_id": subscription_id,
        "subscription_name": subscription_name,
        "service_name": _first(data, "consumed_service") or meter_category,
        "meter_category": meter_category,
        "meter_name": meter_name,
        "usage_unit": usage_unit,
        "usage_amount": data.get("quantity") or 0,
        "cost": cost or 0,
        "region": region,
        "instance_name": instance_name,
        "additional_info": data.get("additional_info"),
    }


def usage_filter(start: datetime, end: datetime) -> str:
    return (
        f"properties/usageStart ge '{format_iso_utc(start)}' "
        f"and properties/usageEnd le '{format_iso_utc(end)}'"
    )


class ConsumptionManagementService:
    """
    Fetches usage details for one subscription and hands them to the estimator.

    When chunk_by_day is set the date range is split into per-day windows that
    are requested one after another, so at most one request is in flight.
    """

    def __init__(
        self,
        estimator: ConsumptionEstimator,
        client: Any = None,
        *,
        subscription_id: Optional[str] = None,
        subscription_name: Optional[str] = None,
        chunk_by_day: bool = False,
    ) -> None:
        self._estimator = estimator
        self._client = client
        self._subscription_id = subscription_id
        self._subscription_name = subscription_name or subscription_id
        self._chunk_by_day = chunk_by_day

    def get_estimates(self, start: datetime, end: datetime, grouping: GroupBy) -> List[EstimationResult]:
        rows = self.get_usage_rows(start, end)
        LOG.debug(
            "Fetched Azure usage rows",
            extra={"subscription_id": self._subscription_id, "rows": len(rows)},
        )
        return self._estimator.estimate_usage(rows, grouping)

    def get_estimates_from_input_data(self, input_data: Sequence[LookupTableInput]) -> List[EstimationResult]:
        return self._estimator.estimate_input_data(input_data)

    def get_usage_rows(self, start: datetime, end: datetime) -> List[UsageRow]:
        if self._client is None or not self._subscription_id:
            raise ValueError("A consumption client and subscription id are required to fetch usage")
        start = parse_iso_utc(start)
        end = parse_iso_utc(end)
        if not self._chunk_by_day:
            return self._fetch_window((start, end))

        rows: List[UsageRow] = []
        for window in split_into_days(start, end):
            rows.extend(self._fetch_window(window))
        return rows

    def _fetch_window(self, window: DateRange) -> List[UsageRow]:
        start, end = window
        try:
            details = self._client.usage_details.list(
                scope=f"/subscriptions/{self._subscription_id}",
                expand=USAGE_EXPAND,
                filter=usage_filter(start, end),
            )
            return [
                usage_row_from_detail(detail, str(self._subscription_id), str(self._subscription_name))
                for detail in details
            ]
        except Exception as e:
            mapped = map_azure_error(
                e, f"Azure SDK error while listing usage details for subscription {self._subscription_id}"
            )
            if mapped:
                raise mapped from e
            raise
