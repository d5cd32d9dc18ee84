from __future__ import annotations

from datetime import datetime
from time import perf_counter
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

from .auth.providers import AuthContext, resolve_auth
from .azure.advisor import AdvisorRecommendations
from .azure.clients import get_advisor_client, get_consumption_client, get_subscription_client
from .azure.consumption import ConsumptionManagementService
from .azure.subscriptions import list_subscriptions
from .config import AzureSettings, load_azure_settings
from .domain import AZURE_CLOUD_CONSTANTS, GroupBy, Subscription
from .estimate import get_consumption_estimator, get_recommendation_estimator
from .estimate.base import EstimationResult, LookupTableInput, RecommendationResult
from .logging import get_logger
from .util.concurrency import SEQUENTIAL, ExecutionStrategy, Task, isolate, run_tasks, strategy_for
from .util.errors import AccountInitializationError, AccountNotInitializedError

LOG = get_logger(__name__)

CredentialsProvider = Callable[[], AuthContext]


def _flatten(nested: Sequence[Sequence[Any]]) -> List[Any]:
    return [item for items in nested for item in items]


class AzureAccount:
    """
    Entry point for collecting Azure consumption estimates and Advisor
    recommendations across every subscription visible to the credential.

    initialize_account() must be called before any other operation. A single
    subscription's failure is logged and contributes no results; it never
    aborts the whole call.
    """

    def __init__(
        self,
        settings: Optional[AzureSettings] = None,
        *,
        credentials_provider: Optional[CredentialsProvider] = None,
    ) -> None:
        self._settings = settings or load_azure_settings()
        self._credentials_provider = credentials_provider or self._resolve_credentials
        self._auth: Optional[AuthContext] = None
        self._subscription_client: Any = None

    @property
    def settings(self) -> AzureSettings:
        return self._settings

    @property
    def auth_method(self) -> Optional[str]:
        """The credential variant resolved by initialize_account(), or None before it."""
        return self._auth.method if self._auth is not None else None

    @property
    def initialized(self) -> bool:
        return self._auth is not None and self._subscription_client is not None

    def _resolve_credentials(self) -> AuthContext:
        s = self._settings
        return resolve_auth(s.auth, s.tenant_id, s.client_id, s.client_secret, s.federated_token_file)

    def initialize_account(self) -> None:
        if self.initialized:
            return
        try:
            auth = self._credentials_provider()
            subscription_client = get_subscription_client(auth)
        except Exception as e:
            raise AccountInitializationError(f"Azure initializeAccount failed. Reason: {e}") from e
        self._auth = auth
        self._subscription_client = subscription_client
        LOG.debug("Azure account initialized", extra={"auth_method": auth.method})

    def _require_auth(self) -> AuthContext:
        if self._auth is None or self._subscription_client is None:
            raise AccountNotInitializedError("AzureAccount.initialize_account() must be called first")
        return self._auth

    def list_subscriptions(self) -> List[Subscription]:
        self._require_auth()
        return list_subscriptions(self._subscription_client)

    def get_recommendations(self) -> List[RecommendationResult]:
        subscriptions = self.list_subscriptions()
        tasks = [self._recommendation_task(subscription) for subscription in subscriptions]
        return _flatten(run_tasks(tasks, ExecutionStrategy.concurrent()))

    def get_estimates(
        self,
        start_date: datetime,
        end_date: datetime,
        grouping: Union[GroupBy, str],
    ) -> List[EstimationResult]:
        subscriptions = self.list_subscriptions()
        requests = self.create_subscription_requests(subscriptions, start_date, end_date, GroupBy(grouping))

        strategy = strategy_for(self._settings.chunk_by_day, self._settings.subscription_chunks)
        chunk_size = self._settings.subscription_chunks or 1
        if strategy.mode == SEQUENTIAL:
            LOG.debug("Fetching Azure consumption data one subscription at a time (chunked by day)")
        else:
            LOG.debug("Fetching Azure consumption data with %s chunk(s)", chunk_size)

        started = perf_counter()
        results = run_tasks(requests, strategy)
        LOG.info(
            "Fetched Azure consumption data for %d subscription(s)",
            len(subscriptions),
            extra={
                "strategy": strategy.mode,
                "subscription_chunks": chunk_size,
                "duration_ms": int((perf_counter() - started) * 1000),
            },
        )
        return _flatten(results)

    def create_subscription_requests(
        self,
        subscriptions: Sequence[Subscription],
        start_date: datetime,
        end_date: datetime,
        grouping: GroupBy,
    ) -> List[Task[List[EstimationResult]]]:
        """
        Build one deferred, failure-isolated fetch per subscription. Nothing is
        requested until the returned callables are executed.
        """
        self._require_auth()
        return [
            self._consumption_task(subscription, start_date, end_date, grouping)
            for subscription in subscriptions
        ]

    def _consumption_task(
        self,
        subscription: Subscription,
        start_date: datetime,
        end_date: datetime,
        grouping: GroupBy,
    ) -> Task[List[EstimationResult]]:
        def _fetch() -> List[EstimationResult]:
            LOG.info("Getting data for %s...", subscription.display_name)
            return self._get_data_for_subscription(start_date, end_date, subscription, grouping)

        def _on_error(e: BaseException) -> None:
            LOG.warning(
                "Unable to get estimate data for Azure subscription %s: %s",
                subscription.subscription_id,
                e,
                extra={"subscription_id": subscription.subscription_id, "error": str(e)},
            )

        return isolate(_fetch, _on_error)

    def _recommendation_task(self, subscription: Subscription) -> Task[List[RecommendationResult]]:
        def _fetch() -> List[RecommendationResult]:
            return self._get_recommendations_for_subscription(subscription)

        def _on_error(e: BaseException) -> None:
            LOG.warning(
                "Unable to get Advisor recommendations data for Azure subscription %s: %s",
                subscription.subscription_id,
                e,
                extra={"subscription_id": subscription.subscription_id, "error": str(e)},
            )

        return isolate(_fetch, _on_error)

    def _get_data_for_subscription(
        self,
        start_date: datetime,
        end_date: datetime,
        subscription: Subscription,
        grouping: GroupBy,
    ) -> List[EstimationResult]:
        auth = self._require_auth()
        service = ConsumptionManagementService(
            get_consumption_estimator(AZURE_CLOUD_CONSTANTS),
            get_consumption_client(auth, subscription.subscription_id),
            subscription_id=subscription.subscription_id,
            subscription_name=subscription.display_name,
            chunk_by_day=self._settings.chunk_by_day,
        )
        return service.get_estimates(start_date, end_date, grouping)

    def _get_recommendations_for_subscription(self, subscription: Subscription) -> List[RecommendationResult]:
        auth = self._require_auth()
        recommendations = AdvisorRecommendations(
            get_recommendation_estimator(AZURE_CLOUD_CONSTANTS),
            get_advisor_client(auth, subscription.subscription_id),
            subscription_id=subscription.subscription_id,
            subscription_name=subscription.display_name,
        )
        return recommendations.get_recommendations()

    @staticmethod
    def get_data_from_consumption_management_input_data(
        input_data: Sequence[Union[LookupTableInput, Mapping[str, Any]]],
    ) -> List[EstimationResult]:
        """
        Run the estimator over a caller-supplied lookup table. No credentials or
        network access are involved.
        """
        rows = [
            item if isinstance(item, LookupTableInput) else LookupTableInput.from_mapping(dict(item))
            for item in input_data
        ]
        service = ConsumptionManagementService(get_consumption_estimator(AZURE_CLOUD_CONSTANTS))
        return service.get_estimates_from_input_data(rows)
