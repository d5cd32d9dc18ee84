from __future__ import annotations

from typing import Callable, Optional

from ..domain import AZURE_CLOUD_CONSTANTS, AzureCloudConstants
from .base import ConsumptionEstimator, RecommendationEstimator

ConsumptionEstimatorFactory = Callable[[AzureCloudConstants], ConsumptionEstimator]
RecommendationEstimatorFactory = Callable[[AzureCloudConstants], RecommendationEstimator]


class EstimatorRegistry:
    """
    Holds the factories the estimation library registers for consumption and
    recommendation estimates. Falls back to pass-through estimators when
    nothing is registered.
    """

    def __init__(self) -> None:
        self._consumption: Optional[ConsumptionEstimatorFactory] = None
        self._recommendation: Optional[RecommendationEstimatorFactory] = None

    def register_consumption(self, factory: ConsumptionEstimatorFactory) -> None:
        self._consumption = factory

    def register_recommendation(self, factory: RecommendationEstimatorFactory) -> None:
        self._recommendation = factory

    def reset(self) -> None:
        self._consumption = None
        self._recommendation = None

    def consumption(self, constants: AzureCloudConstants) -> ConsumptionEstimator:
        if self._consumption is not None:
            return self._consumption(constants)
        # Import here to avoid circular import at module load
        from .default import PassThroughConsumptionEstimator

        return PassThroughConsumptionEstimator(constants)

    def recommendation(self, constants: AzureCloudConstants) -> RecommendationEstimator:
        if self._recommendation is not None:
            return self._recommendation(constants)
        from .default import PassThroughRecommendationEstimator

        return PassThroughRecommendationEstimator(constants)


_global_registry = EstimatorRegistry()


def register_consumption_estimator(factory: ConsumptionEstimatorFactory) -> None:
    _global_registry.register_consumption(factory)


def register_recommendation_estimator(factory: RecommendationEstimatorFactory) -> None:
    _global_registry.register_recommendation(factory)


def reset_estimators() -> None:
    _global_registry.reset()


def get_consumption_estimator(constants: AzureCloudConstants = AZURE_CLOUD_CONSTANTS) -> ConsumptionEstimator:
    return _global_registry.consumption(constants)


def get_recommendation_estimator(
    constants: AzureCloudConstants = AZURE_CLOUD_CONSTANTS,
) -> RecommendationEstimator:
    return _global_registry.recommendation(constants)
