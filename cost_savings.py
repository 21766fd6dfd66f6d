"""
Potential Cost Savings
Summarizes Advisor cost recommendations by solution and currency through Azure Resource Graph
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.mgmt.resource import SubscriptionClient
from azure.mgmt.resourcegraph import ResourceGraphClient
from azure.mgmt.resourcegraph.models import QueryRequest, QueryRequestOptions

from errors import CollaboratorError, ValidationError
from sliding_cache import SlidingExpirationCache

logger = logging.getLogger(__name__)

COST_OPTIMIZATION_QUERY = """
AdvisorResources
| where type == 'microsoft.advisor/recommendations'
| where properties.category == 'Cost'
| extend
    resources = tostring(properties.resourceMetadata.resourceId),
    savings = todouble(properties.extendedProperties.savingsAmount),
    solution = tostring(properties.shortDescription.solution),
    currency = tostring(properties.extendedProperties.savingsCurrency)
| summarize
    dcount(resources),
    bin(sum(savings), 0.01)
    by solution, currency
| project solution, dcount_resources, sum_savings, currency
| order by sum_savings desc
"""


class CostSavingsClient:
    def __init__(
        self,
        credential,
        tenant_cache: SlidingExpirationCache,
        rg_client: Optional[ResourceGraphClient] = None,
        sub_client: Optional[SubscriptionClient] = None,
    ):
        self.rg_client = rg_client or ResourceGraphClient(credential)
        self.sub_client = sub_client or SubscriptionClient(credential)
        self.tenant_cache = tenant_cache

    async def get_cost_savings(self, subscription_id: str) -> str:
        """
        Potential savings per recommended solution, highest first, as JSON text

        Raises:
            ValidationError: If no tenant owns the subscription
            CollaboratorError: If an Azure call fails
        """
        tenant_id = await self.resolve_tenant(subscription_id)
        logger.info(f"Querying cost savings for subscription {subscription_id} in tenant {tenant_id}")

        try:
            rows = await asyncio.to_thread(self._query_savings, subscription_id)
        except AzureError as e:
            logger.error(f"Cost savings query failed for {subscription_id}: {e}")
            raise CollaboratorError(str(e)) from e

        return json.dumps(rows)

    async def resolve_tenant(self, subscription_id: str) -> str:
        tenant_id = self.tenant_cache.get(subscription_id)
        if tenant_id is not None:
            logger.info(f"Cache hit for subscriptionId {subscription_id}. Tenant is {tenant_id}")
            return tenant_id

        try:
            tenant_id = await asyncio.to_thread(self._lookup_tenant, subscription_id)
        except AzureError as e:
            logger.error(f"Tenant lookup failed for {subscription_id}: {e}")
            raise CollaboratorError(str(e)) from e

        if not tenant_id:
            logger.error("No tenant found for subscription id provided in the request!")
            raise ValidationError("No tenant found for subscription id provided in the request!")

        self.tenant_cache.set(subscription_id, tenant_id)
        return tenant_id

    def _lookup_tenant(self, subscription_id: str) -> Optional[str]:
        try:
            subscription = self.sub_client.subscriptions.get(subscription_id)
        except ResourceNotFoundError:
            return None
        return subscription.tenant_id

    def _query_savings(self, subscription_id: str) -> List[Dict[str, Any]]:
        request = QueryRequest(
            subscriptions=[subscription_id],
            query=COST_OPTIMIZATION_QUERY,
            options=QueryRequestOptions(result_format="objectArray"),
        )
        response = self.rg_client.resources(request)
        return response.data or []
