"""
AI Services
Chat completion and text embedding backends (Azure OpenAI or OpenAI) used by prompt operations and semantic memory
"""

import logging
from typing import Any, Dict, List, Optional, Union

from azure.identity import DefaultAzureCredential, get_bearer_token_provider
from openai import AsyncAzureOpenAI, AsyncOpenAI, OpenAIError

from config import KernelSettings, ServiceTypes
from errors import CollaboratorError

logger = logging.getLogger(__name__)

COGNITIVE_SERVICES_SCOPE = "https://cognitiveservices.azure.com/.default"


def create_openai_client(settings: KernelSettings) -> Union[AsyncAzureOpenAI, AsyncOpenAI]:
    """
    Create the async OpenAI client for the configured backend

    Args:
        settings: Kernel settings (service type, endpoint, credentials)

    Raises:
        ValueError: If the service type is not supported
    """
    service_type = settings.service_type.upper()

    if service_type == ServiceTypes.AZURE_OPENAI:
        if settings.use_managed_identity:
            # Managed Identity authentication
            token_provider = get_bearer_token_provider(DefaultAzureCredential(), COGNITIVE_SERVICES_SCOPE)
            return AsyncAzureOpenAI(
                azure_endpoint=settings.endpoint,
                azure_ad_token_provider=token_provider,
                api_version=settings.api_version,
            )
        return AsyncAzureOpenAI(
            azure_endpoint=settings.endpoint,
            api_key=settings.api_key,
            api_version=settings.api_version,
        )

    if service_type == ServiceTypes.OPENAI:
        return AsyncOpenAI(api_key=settings.api_key, organization=settings.org_id or None)

    raise ValueError(f"Invalid service type value: {settings.service_type}")


class ChatCompletionService:
    """Single-turn chat completion used to run prompt templates"""

    def __init__(self, client: Union[AsyncAzureOpenAI, AsyncOpenAI], model: str):
        self.client = client
        self.model = model

    async def complete(self, prompt: str, request_settings: Optional[Dict[str, Any]] = None) -> str:
        """
        Send a rendered prompt and return the completion text

        Args:
            prompt: Fully rendered prompt
            request_settings: Completion settings from the prompt's config.json
        """
        request_settings = request_settings or {}
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=request_settings.get("max_tokens", 1024),
                temperature=request_settings.get("temperature", 0.0),
                top_p=request_settings.get("top_p", 1.0),
                presence_penalty=request_settings.get("presence_penalty", 0.0),
                frequency_penalty=request_settings.get("frequency_penalty", 0.0),
            )
        except OpenAIError as e:
            logger.error(f"Chat completion failed: {e}")
            raise CollaboratorError(str(e)) from e

        return response.choices[0].message.content or ""


class TextEmbeddingService:
    """Embedding generation for semantic memory"""

    def __init__(self, client: Union[AsyncAzureOpenAI, AsyncOpenAI], model: str):
        self.client = client
        self.model = model

    async def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        try:
            response = await self.client.embeddings.create(model=self.model, input=texts)
        except OpenAIError as e:
            logger.error(f"Embedding generation failed: {e}")
            raise CollaboratorError(str(e)) from e

        embeddings = [item.embedding for item in response.data]
        logger.debug(f"Generated {len(embeddings)} embeddings ({self.model})")
        return embeddings
