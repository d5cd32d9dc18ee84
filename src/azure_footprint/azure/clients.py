from __future__ import annotations

from typing import Any

from azure.mgmt.advisor import AdvisorManagementClient
from azure.mgmt.consumption import ConsumptionManagementClient
from azure.mgmt.subscription import SubscriptionClient

from ..auth.providers import AuthContext


def get_subscription_client(ctx: AuthContext) -> Any:
    """
    Create a SubscriptionClient bound to the resolved credential.
    """
    return SubscriptionClient(ctx.credential)


def get_consumption_client(ctx: AuthContext, subscription_id: str) -> Any:
    return ConsumptionManagementClient(ctx.credential, subscription_id)


def get_advisor_client(ctx: AuthContext, subscription_id: str) -> Any:
    return AdvisorManagementClient(ctx.credential, subscription_id)
