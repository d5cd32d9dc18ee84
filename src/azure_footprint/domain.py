from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class GroupBy(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


@dataclass(frozen=True)
class Subscription:
    subscription_id: str
    display_name: str
    state: str | None = None


@dataclass(frozen=True)
class AzureCloudConstants:
    """
    Fixed Azure coefficients handed unchanged to the estimation library.
    Units follow the estimator: watts per vCPU, kWh per GB or TB-hour.
    """

    min_watts_avg: float = 0.78
    max_watts_avg: float = 3.76
    avg_cpu_utilization_2020: float = 50.0
    pue_avg: float = 1.185
    networking_coefficient: float = 0.001
    memory_coefficient: float = 0.000392
    ssd_coefficient: float = 1.2
    hdd_coefficient: float = 0.65
    server_expected_lifespan: int = 35040  # hours (4 years)
    estimate_unknown_usage_by: str = "USAGE_AMOUNT"


AZURE_CLOUD_CONSTANTS = AzureCloudConstants()

CLOUD_PROVIDER = "AZURE"
