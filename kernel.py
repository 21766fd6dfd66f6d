"""
Kernel
Wires AI services, semantic memory and the operation registry together once at start-up
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ai_services import ChatCompletionService, TextEmbeddingService, create_openai_client
from config import AppSettings
from plugin_registry import CompletionService, OperationRegistry, load_prompts_from_directory
from semantic_memory import EmbeddingGenerator, MemoryStore, SemanticTextMemory, VolatileMemoryStore
from text_memory_plugin import register_text_memory_plugin

logger = logging.getLogger(__name__)


@dataclass
class Kernel:
    settings: AppSettings
    memory: SemanticTextMemory
    registry: OperationRegistry
    chat_service: CompletionService


def build_kernel(
    settings: AppSettings,
    memory_store: Optional[MemoryStore] = None,
    chat_service: Optional[CompletionService] = None,
    embedding_service: Optional[EmbeddingGenerator] = None,
) -> Kernel:
    """
    Build the kernel: AI services, memory, native memory operations and prompt operations

    Args:
        settings: Application settings
        memory_store: Memory store shared by all requests (defaults to a VolatileMemoryStore)
        chat_service: Chat completion backend (defaults to the configured OpenAI backend)
        embedding_service: Embedding backend (defaults to the configured OpenAI backend)
    """
    if chat_service is None or embedding_service is None:
        client = create_openai_client(settings.kernel)
        if chat_service is None:
            chat_service = ChatCompletionService(client, settings.kernel.chat_completion_deployment_or_model_id)
        if embedding_service is None:
            embedding_service = TextEmbeddingService(
                client, settings.kernel.text_embedding_generation_deployment_or_model_id
            )

    memory = SemanticTextMemory(memory_store or VolatileMemoryStore(), embedding_service)

    registry = OperationRegistry()
    register_text_memory_plugin(registry, memory)
    load_prompts_from_directory(registry, settings.ai_plugin.name_for_model, settings.prompts_folder, chat_service)

    logger.info(f"Kernel ready with {len(registry)} operations")
    return Kernel(settings=settings, memory=memory, registry=registry, chat_service=chat_service)
