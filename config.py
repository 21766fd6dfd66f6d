"""
Application Settings
Loads kernel, AI plugin and Azure settings once at start-up and hands them to every component
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator


DEFAULT_PROMPTS_FOLDER = str(Path(__file__).parent / "prompts")


class ServiceTypes:
    """Supported AI backends"""
    AZURE_OPENAI = "AZUREOPENAI"
    OPENAI = "OPENAI"


class KernelSettings(BaseModel):
    """Chat completion and embedding backend settings"""
    service_type: str = "AzureOpenAI"
    service_id: str = ""
    chat_completion_deployment_or_model_id: str = "gpt-4"
    text_embedding_generation_deployment_or_model_id: str = "text-embedding-ada-002"
    endpoint: str = ""
    api_key: str = ""
    org_id: str = ""
    api_version: str = "2024-08-01-preview"
    use_managed_identity: bool = False
    log_level: str = "INFO"

    @field_validator("service_type")
    @classmethod
    def _check_service_type(cls, value: str) -> str:
        if value.upper() not in (ServiceTypes.AZURE_OPENAI, ServiceTypes.OPENAI):
            raise ValueError(f"Invalid service type value: {value}")
        return value


class AIPluginSettings(BaseModel):
    """Metadata published in the AI plugin manifest"""
    name_for_model: str = "AzureAdvisorPlugin"
    name_for_human: str = "Azure Advisor"
    description_for_model: str = (
        "Answers questions about Azure Advisor recommendations, advisor scores "
        "and potential cost savings for an Azure subscription."
    )
    description_for_human: str = "Ask questions about your Azure Advisor recommendations."
    contact_email: str = "support@example.com"
    logo_url: str = ""
    legal_info_url: str = ""


class AppSettings(BaseModel):
    kernel: KernelSettings = Field(default_factory=KernelSettings)
    ai_plugin: AIPluginSettings = Field(default_factory=AIPluginSettings)
    prompts_folder: str = DEFAULT_PROMPTS_FOLDER
    management_endpoint: str = "https://management.azure.com"
    cache_ttl_minutes: int = 10


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


def load_settings(env_file: Optional[str] = None) -> AppSettings:
    """
    Build the application settings from the environment

    Args:
        env_file: Optional path to a .env file (defaults to python-dotenv discovery)

    Returns:
        Fully populated AppSettings
    """
    load_dotenv(dotenv_path=env_file)

    kernel = KernelSettings(
        service_type=os.getenv("KERNEL_SERVICE_TYPE", "AzureOpenAI"),
        service_id=os.getenv("KERNEL_SERVICE_ID", ""),
        chat_completion_deployment_or_model_id=os.getenv("AZURE_OPENAI_DEPLOYMENT_NAME", "gpt-4"),
        text_embedding_generation_deployment_or_model_id=os.getenv(
            "AZURE_OPENAI_EMBEDDING_DEPLOYMENT_NAME", "text-embedding-ada-002"
        ),
        endpoint=os.getenv("AZURE_OPENAI_ENDPOINT", ""),
        api_key=os.getenv("AZURE_OPENAI_API_KEY") or os.getenv("OPENAI_API_KEY", ""),
        org_id=os.getenv("OPENAI_ORG_ID", ""),
        api_version=os.getenv("AZURE_OPENAI_API_VERSION", "2024-08-01-preview"),
        use_managed_identity=_env_flag("USE_MANAGED_IDENTITY"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )

    ai_plugin = AIPluginSettings(
        name_for_model=os.getenv("AIPLUGIN_NAME_FOR_MODEL", "AzureAdvisorPlugin"),
        name_for_human=os.getenv("AIPLUGIN_NAME_FOR_HUMAN", "Azure Advisor"),
        contact_email=os.getenv("AIPLUGIN_CONTACT_EMAIL", "support@example.com"),
        logo_url=os.getenv("AIPLUGIN_LOGO_URL", ""),
        legal_info_url=os.getenv("AIPLUGIN_LEGAL_INFO_URL", ""),
    )

    return AppSettings(
        kernel=kernel,
        ai_plugin=ai_plugin,
        prompts_folder=os.getenv("SEMANTIC_SKILLS_FOLDER", DEFAULT_PROMPTS_FOLDER),
        management_endpoint=os.getenv("AZURE_MANAGEMENT_ENDPOINT", "https://management.azure.com"),
        cache_ttl_minutes=int(os.getenv("CACHE_TTL_MINUTES", "10")),
    )
