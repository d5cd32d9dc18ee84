from __future__ import annotations

from typing import Any, Dict, List, Sequence, Tuple

from ..domain import CLOUD_PROVIDER, AzureCloudConstants, GroupBy
from ..util.time import parse_iso_utc, period_start
from .base import AdvisorRow, EstimationResult, LookupTableInput, RecommendationResult, UsageRow

NOT_ESTIMATED = "NOT_ESTIMATED"


def _as_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


class PassThroughConsumptionEstimator:
    """
    Consumption estimator used when no estimation library is registered.

    - Never calls any API and never raises on malformed rows.
    - Groups rows into EstimationResult-shaped records (timestamp bucket by
      grouping, one service estimate per subscription/service/region) with
      summed cost and usage.
    - Energy and carbon fields are left as None with
      estimateStatus = "NOT_ESTIMATED".
    """

    def __init__(self, constants: AzureCloudConstants) -> None:
        self.constants = constants

    def estimate_usage(self, rows: Sequence[UsageRow], grouping: GroupBy) -> List[EstimationResult]:
        group = GroupBy(grouping).value
        buckets: Dict[str, Dict[Tuple[str, str, str], Dict[str, Any]]] = {}
        for row in rows:
            ts = row.get("timestamp")
            if not ts:
                continue
            bucket = period_start(parse_iso_utc(ts), group).isoformat()
            key = (
                str(row.get("subscription_id") or ""),
                str(row.get("service_name") or ""),
                str(row.get("region") or ""),
            )
            estimates = buckets.setdefault(bucket, {})
            estimate = estimates.get(key)
            if estimate is None:
                estimate = {
                    "cloudProvider": CLOUD_PROVIDER,
                    "accountId": key[0],
                    "accountName": row.get("subscription_name") or key[0],
                    "serviceName": key[1],
                    "region": key[2],
                    "cost": 0.0,
                    "usageAmount": 0.0,
                    "kilowattHours": None,
                    "co2e": None,
                    "estimateStatus": NOT_ESTIMATED,
                }
                estimates[key] = estimate
            estimate["cost"] += _as_float(row.get("cost"))
            estimate["usageAmount"] += _as_float(row.get("usage_amount"))

        return [
            {"timestamp": bucket, "groupBy": group, "serviceEstimates": list(estimates.values())}
            for bucket, estimates in sorted(buckets.items())
        ]

    def estimate_input_data(self, input_data: Sequence[LookupTableInput]) -> List[EstimationResult]:
        return [
            {
                "serviceName": item.service_name,
                "region": item.region,
                "usageType": item.usage_type,
                "usageUnit": item.usage_unit,
                "vCpus": item.vcpus,
                "machineType": item.machine_type,
                "kilowattHours": None,
                "co2e": None,
                "estimateStatus": NOT_ESTIMATED,
            }
            for item in input_data
        ]


class PassThroughRecommendationEstimator:
    """
    Recommendation estimator used when no estimation library is registered.
    Maps each Advisor row to a RecommendationResult-shaped record with the
    provider-reported savings and no carbon figures.
    """

    def __init__(self, constants: AzureCloudConstants) -> None:
        self.constants = constants

    def estimate_recommendations(self, rows: Sequence[AdvisorRow]) -> List[RecommendationResult]:
        results: List[RecommendationResult] = []
        for row in rows:
            extended = row.get("extended_properties") or {}
            results.append(
                {
                    "cloudProvider": CLOUD_PROVIDER,
                    "accountId": row.get("subscription_id"),
                    "accountName": row.get("subscription_name") or row.get("subscription_id"),
                    "region": row.get("region"),
                    "recommendationType": row.get("recommendation_type_id"),
                    "recommendationDetail": row.get("solution") or row.get("problem"),
                    "resourceId": row.get("resource_id"),
                    "costSavings": _as_float(extended.get("savingsAmount") or extended.get("annualSavingsAmount")),
                    "kilowattHourSavings": None,
                    "co2eSavings": None,
                    "estimateStatus": NOT_ESTIMATED,
                }
            )
        return results
