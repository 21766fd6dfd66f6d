"""
Text Memory Plugin
Native recall/save operations over semantic memory, callable from prompt templates
"""

import json
import logging

from errors import OperationError
from plugin_registry import GLOBAL_NAMESPACE, ContextVariables, OperationRegistry
from semantic_memory import SemanticTextMemory

logger = logging.getLogger(__name__)

COLLECTION_PARAM = "collection"
RELEVANCE_PARAM = "relevance"
LIMIT_PARAM = "limit"
KEY_PARAM = "key"

DEFAULT_COLLECTION = "generic"
DEFAULT_RELEVANCE = 0.0
DEFAULT_LIMIT = 1


class TextMemoryPlugin:
    """recall and save operations reading their parameters from context variables"""

    def __init__(self, memory: SemanticTextMemory):
        self.memory = memory

    async def recall(self, context: ContextVariables) -> str:
        """
        Semantic search over a collection

        Returns the best match as text when limit is 1, otherwise a JSON array of
        the matching texts, best first. Returns "" when nothing matches.
        """
        collection = context.get(COLLECTION_PARAM) or DEFAULT_COLLECTION
        relevance = _parse_number(context, RELEVANCE_PARAM, float, DEFAULT_RELEVANCE)
        limit = _parse_number(context, LIMIT_PARAM, int, DEFAULT_LIMIT)

        logger.debug(f"Searching memory collection '{collection}' (relevance {relevance}, limit {limit})")
        results = await self.memory.search(collection, context.input, limit=limit, min_relevance_score=relevance)

        if not results:
            logger.warning(f"Memories not found in collection: {collection}")
            return ""

        if limit == 1:
            return results[0].text
        return json.dumps([result.text for result in results])

    async def save(self, context: ContextVariables) -> str:
        collection = context.get(COLLECTION_PARAM) or DEFAULT_COLLECTION
        key = context.get(KEY_PARAM)
        if not key:
            raise OperationError("Memory key not defined")

        await self.memory.save_information(collection, text=context.input, id=key)
        return ""


def _parse_number(context: ContextVariables, name: str, cast, default):
    raw = context.get(name)
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise OperationError(f"Invalid value for '{name}': {raw}") from None


def register_text_memory_plugin(registry: OperationRegistry, memory: SemanticTextMemory) -> TextMemoryPlugin:
    plugin = TextMemoryPlugin(memory)
    registry.register(GLOBAL_NAMESPACE, "recall", plugin.recall, description="Semantic search over memory")
    registry.register(GLOBAL_NAMESPACE, "save", plugin.save, description="Save information to memory")
    return plugin
