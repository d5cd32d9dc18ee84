from __future__ import annotations

import types

import pytest

from azure_footprint.azure.advisor import (
    COST_CATEGORY_FILTER,
    AdvisorRecommendations,
    advisor_row_from_recommendation,
)
from azure_footprint.util.errors import AzureClientError


class DummyAzureError(Exception):
    __module__ = "azure.core.exceptions"


def _recommendation(rec_id: str = "rec-1"):
    return types.SimpleNamespace(
        id=f"/subscriptions/A/providers/Microsoft.Advisor/recommendations/{rec_id}",
        category="Cost",
        impact="High",
        impacted_field="Microsoft.Compute/virtualMachines",
        impacted_value="vm-1",
        short_description=types.SimpleNamespace(
            problem="Right-size or shutdown underutilized virtual machines",
            solution="Right-size or shutdown underutilized virtual machines",
        ),
        recommendation_type_id="e10b1381-5f0a-47ff-8c7b-37bd13d7c974",
        resource_metadata=types.SimpleNamespace(resource_id="/subscriptions/A/vm-1"),
        extended_properties={"regionId": "westeurope", "savingsAmount": "12.5"},
        last_updated=None,
    )


class _Recommendations:
    def __init__(self, items=None, fail: bool = False) -> None:
        self.items = items or []
        self.fail = fail
        self.filters = []

    def list(self, filter=None):  # noqa: A002
        self.filters.append(filter)
        if self.fail:
            raise DummyAzureError("ResourceNotFound")
        return iter(self.items)


class _Estimator:
    def estimate_recommendations(self, rows):
        return [{"resourceId": row["resource_id"], "region": row["region"]} for row in rows]


def test_advisor_row_flattens_sdk_model() -> None:
    row = advisor_row_from_recommendation(_recommendation(), "A", "Sub A")

    assert row["subscription_id"] == "A"
    assert row["subscription_name"] == "Sub A"
    assert row["impact"] == "High"
    assert row["solution"].startswith("Right-size")
    assert row["resource_id"] == "/subscriptions/A/vm-1"
    assert row["region"] == "westeurope"
    assert row["extended_properties"]["savingsAmount"] == "12.5"


def test_advisor_row_defaults_name_to_id() -> None:
    row = advisor_row_from_recommendation(types.SimpleNamespace(id="x"), "A")
    assert row["subscription_name"] == "A"
    assert row["region"] is None


def test_get_recommendations_filters_cost_category() -> None:
    recs = _Recommendations([_recommendation("r1"), _recommendation("r2")])
    service = AdvisorRecommendations(
        _Estimator(), types.SimpleNamespace(recommendations=recs), subscription_id="A"
    )

    results = service.get_recommendations()

    assert recs.filters == [COST_CATEGORY_FILTER]
    assert results == [
        {"resourceId": "/subscriptions/A/vm-1", "region": "westeurope"},
        {"resourceId": "/subscriptions/A/vm-1", "region": "westeurope"},
    ]


def test_get_recommendations_maps_sdk_errors() -> None:
    service = AdvisorRecommendations(
        _Estimator(),
        types.SimpleNamespace(recommendations=_Recommendations(fail=True)),
        subscription_id="A",
    )

    with pytest.raises(AzureClientError, match="subscription A: ResourceNotFound"):
        service.get_recommendations()
