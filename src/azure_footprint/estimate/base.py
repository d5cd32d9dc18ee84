from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from ..domain import GroupBy

UsageRow = Dict[str, Any]
AdvisorRow = Dict[str, Any]
EstimationResult = Dict[str, Any]
RecommendationResult = Dict[str, Any]


@dataclass(frozen=True)
class LookupTableInput:
    service_name: str
    region: str
    usage_type: str
    usage_unit: str
    vcpus: Optional[str] = None
    machine_type: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "LookupTableInput":
        """
        Build from a CSV/JSON row. Accepts snake_case or camelCase keys.
        """

        def pick(*keys: str) -> Optional[str]:
            for key in keys:
                value = data.get(key)
                if value is not None and str(value).strip():
                    return str(value).strip()
            return None

        service_name = pick("service_name", "serviceName")
        region = pick("region")
        usage_type = pick("usage_type", "usageType")
        usage_unit = pick("usage_unit", "usageUnit")
        missing = [
            name
            for name, value in (
                ("service_name", service_name),
                ("region", region),
                ("usage_type", usage_type),
                ("usage_unit", usage_unit),
            )
            if value is None
        ]
        if missing:
            raise ValueError(f"Lookup table row is missing fields: {', '.join(missing)}")
        return cls(
            service_name=service_name,  # type: ignore[arg-type]
            region=region,  # type: ignore[arg-type]
            usage_type=usage_type,  # type: ignore[arg-type]
            usage_unit=usage_unit,  # type: ignore[arg-type]
            vcpus=pick("vcpus", "vCpus"),
            machine_type=pick("machine_type", "machineType"),
        )


@runtime_checkable
class ConsumptionEstimator(Protocol):
    """
    Maps Consumption usage rows into estimation results.
    Implementations must be pure: no network I/O, no mutation of inputs.
    """

    def estimate_usage(self, rows: Sequence[UsageRow], grouping: GroupBy) -> List[EstimationResult]:
        ...

    def estimate_input_data(self, input_data: Sequence[LookupTableInput]) -> List[EstimationResult]:
        ...


@runtime_checkable
class RecommendationEstimator(Protocol):
    """
    Maps Advisor recommendation rows into recommendation results.
    """

    def estimate_recommendations(self, rows: Sequence[AdvisorRow]) -> List[RecommendationResult]:
        ...
