"""
Query Recommendations
Answers a natural-language question about a subscription's Advisor recommendations:
validate, warm the embeddings cache, then run the MemoryQuery operation
"""

import logging
from typing import Optional

from advisor_recommendations import EmbeddingsCacheBuilder
from errors import ValidationError
from plugin_registry import ContextVariables
from plugin_runner import AIPluginRunner, ExecutionResult
from text_memory_plugin import COLLECTION_PARAM, LIMIT_PARAM, RELEVANCE_PARAM

logger = logging.getLogger(__name__)

MEMORY_QUERY_OPERATION = "MemoryQuery"
RELEVANCE_THRESHOLD = "0.7"
RESULT_LIMIT = "20"


class RecommendationQueryFlow:
    def __init__(self, cache_builder: EmbeddingsCacheBuilder, plugin_runner: AIPluginRunner):
        self.cache_builder = cache_builder
        self.plugin_runner = plugin_runner

    async def run(self, prompt: Optional[str], subscription_id: Optional[str]) -> ExecutionResult:
        """
        Answer a question about the recommendations of one subscription

        Args:
            prompt: The user's question
            subscription_id: Azure subscription id

        Raises:
            ValidationError: If the prompt or subscription id is missing
            OperationNotFoundError: If MemoryQuery is not registered
            CollaboratorError: If building the cache or running the query hit an external failure
        """
        if not prompt:
            logger.error("No user input provided in the request!")
            raise ValidationError("Please pass your user input in the body of the request")

        if not subscription_id:
            logger.error(f"No subscription id provided in the request! The prompt is {prompt}")
            raise ValidationError("Please pass your subscriptionId in the query string")

        logger.info(f"Processing request for subscription: {subscription_id}")
        await self.cache_builder.ensure_warm(subscription_id)

        context = ContextVariables(prompt)
        context[COLLECTION_PARAM] = subscription_id
        context[RELEVANCE_PARAM] = RELEVANCE_THRESHOLD
        context[LIMIT_PARAM] = RESULT_LIMIT
        context[ContextVariables.INPUT] = prompt

        return await self.plugin_runner.run_operation(MEMORY_QUERY_OPERATION, context)
