from __future__ import annotations

from typing import Any, List, Optional

from ..estimate.base import AdvisorRow, RecommendationEstimator, RecommendationResult
from ..util.errors import map_azure_error
from ..util.serialization import sanitize_for_json

COST_CATEGORY_FILTER = "Category eq 'Cost'"


def advisor_row_from_recommendation(
    item: Any, subscription_id: str, subscription_name: Optional[str] = None
) -> AdvisorRow:
    data = sanitize_for_json(item)
    if not isinstance(data, dict):
        data = {}
    short = data.get("short_description") or {}
    extended = data.get("extended_properties") or {}
    metadata = data.get("resource_metadata") or {}
    return {
        "id": data.get("id"),
        "subscription_id": subscription_id,
        "subscription_name": subscription_name or subscription_id,
        "category": data.get("category"),
        "impact": data.get("impact"),
        "impacted_field": data.get("impacted_field"),
        "impacted_value": data.get("impacted_value"),
        "problem": short.get("problem"),
        "solution": short.get("solution"),
        "recommendation_type_id": data.get("recommendation_type_id"),
        "resource_id": metadata.get("resource_id"),
        "region": extended.get("regionId") or extended.get("location"),
        "extended_properties": extended,
        "last_updated": data.get("last_updated"),
    }


class AdvisorRecommendations:
    """Cost-category Advisor recommendations for a single subscription."""

    def __init__(
        self,
        estimator: RecommendationEstimator,
        client: Any,
        *,
        subscription_id: str,
        subscription_name: Optional[str] = None,
    ) -> None:
        self._estimator = estimator
        self._client = client
        self._subscription_id = subscription_id
        self._subscription_name = subscription_name

    def get_recommendations(self) -> List[RecommendationResult]:
        rows = self.get_rows()
        return self._estimator.estimate_recommendations(rows)

    def get_rows(self) -> List[AdvisorRow]:
        try:
            items = self._client.recommendations.list(filter=COST_CATEGORY_FILTER)
            return [
                advisor_row_from_recommendation(item, self._subscription_id, self._subscription_name)
                for item in items
            ]
        except Exception as e:
            mapped = map_azure_error(
                e, f"Azure SDK error while listing Advisor recommendations for subscription {self._subscription_id}"
            )
            if mapped:
                raise mapped from e
            raise
