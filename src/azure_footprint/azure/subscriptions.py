from __future__ import annotations

from typing import Any, List

from ..domain import Subscription
from ..logging import get_logger
from ..util.errors import map_azure_error

LOG = get_logger(__name__)

NO_SUBSCRIPTIONS_WARNING = (
    "No subscription returned for these Azure credentials, be sure the registered application has "
    "enough permissions. Go to https://www.cloudcarbonfootprint.org/docs/azure/ for more information."
)


def _to_subscription(item: Any) -> Subscription:
    state = getattr(item, "state", None)
    return Subscription(
        subscription_id=str(item.subscription_id),
        display_name=str(getattr(item, "display_name", None) or item.subscription_id),
        state=str(getattr(state, "value", state)) if state is not None else None,
    )


def list_subscriptions(client: Any) -> List[Subscription]:
    """
    List every subscription visible to the credential, in upstream order.
    The SDK pager follows nextLink until exhausted; any page failure is fatal.
    """
    try:
        subscriptions = [_to_subscription(item) for item in client.subscriptions.list()]
    except Exception as e:
        mapped = map_azure_error(e, "Azure SDK error while listing subscriptions")
        if mapped:
            raise mapped from e
        raise

    if not subscriptions:
        LOG.warning(NO_SUBSCRIPTIONS_WARNING)
    return subscriptions
