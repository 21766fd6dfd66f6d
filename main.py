"""
Azure Advisor AI Plugin - Main Application
HTTP operations that let a language-model agent query Azure Advisor recommendations, scores and cost savings
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from advisor_recommendations import AdvisorRecommendationSource, EmbeddingsCacheBuilder, RecommendationSource
from advisor_score import AdvisorScoreClient, scores_to_json
from config import AppSettings, load_settings
from cost_savings import CostSavingsClient
from errors import CollaboratorError, OperationError, OperationNotFoundError, ValidationError
from kernel import Kernel, build_kernel
from plugin_registry import ContextVariables
from plugin_runner import AIPluginRunner, ExecutionResult
from query_recommendations import RecommendationQueryFlow
from sliding_cache import SlidingExpirationCache

logger = logging.getLogger(__name__)

TEXT_MEDIA_TYPE = "text/plain; charset=utf-8"
MISSING_SUBSCRIPTION_MESSAGE = "Please pass your subscriptionId in the query string"

# Cached credential singleton - avoid recreating DefaultAzureCredential on every API call
_cached_credential = None


def get_cached_credential():
    global _cached_credential
    if _cached_credential is None:
        from azure.identity import DefaultAzureCredential
        _cached_credential = DefaultAzureCredential()
    return _cached_credential


@dataclass
class AdvisorServices:
    """Everything the HTTP operations need, built once per process"""
    settings: AppSettings
    kernel: Kernel
    plugin_runner: AIPluginRunner
    query_flow: RecommendationQueryFlow
    score_client: AdvisorScoreClient
    cost_savings_client: CostSavingsClient


def build_services(
    settings: AppSettings,
    kernel: Optional[Kernel] = None,
    recommendation_source: Optional[RecommendationSource] = None,
    score_client: Optional[AdvisorScoreClient] = None,
    cost_savings_client: Optional[CostSavingsClient] = None,
) -> AdvisorServices:
    """
    Build the service graph from settings; any collaborator can be supplied instead of the Azure default
    """
    kernel = kernel or build_kernel(settings)
    ttl_seconds = settings.cache_ttl_minutes * 60

    if recommendation_source is None:
        recommendation_source = AdvisorRecommendationSource(get_cached_credential())
    if score_client is None:
        score_client = AdvisorScoreClient(
            get_cached_credential(), SlidingExpirationCache(ttl_seconds), endpoint=settings.management_endpoint
        )
    if cost_savings_client is None:
        cost_savings_client = CostSavingsClient(get_cached_credential(), SlidingExpirationCache(ttl_seconds))

    plugin_runner = AIPluginRunner(kernel.registry, settings.ai_plugin.name_for_model)
    cache_builder = EmbeddingsCacheBuilder(kernel.memory, recommendation_source)

    return AdvisorServices(
        settings=settings,
        kernel=kernel,
        plugin_runner=plugin_runner,
        query_flow=RecommendationQueryFlow(cache_builder, plugin_runner),
        score_client=score_client,
        cost_savings_client=cost_savings_client,
    )


_services: Optional[AdvisorServices] = None


def get_services() -> AdvisorServices:
    global _services
    if _services is None:
        settings = load_settings()
        logging.basicConfig(
            level=settings.kernel.log_level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        _services = build_services(settings)
    return _services


app = FastAPI(
    title="Azure Advisor AI Plugin",
    description="Queries and summarizes Azure Advisor recommendations, scores and potential cost savings",
    version="1.0.0",
)


def plugin_result_response(result: ExecutionResult) -> PlainTextResponse:
    if result.success:
        return PlainTextResponse(result.output, status_code=200, media_type=TEXT_MEDIA_TYPE)
    return PlainTextResponse(result.error or "", status_code=400, media_type=TEXT_MEDIA_TYPE)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    # Message is written as-is under a JSON content type
    return Response(exc.message, status_code=400, media_type="application/json")


@app.exception_handler(OperationNotFoundError)
async def operation_not_found_handler(request: Request, exc: OperationNotFoundError):
    return PlainTextResponse(exc.message, status_code=404, media_type=TEXT_MEDIA_TYPE)


@app.exception_handler(OperationError)
async def operation_error_handler(request: Request, exc: OperationError):
    return PlainTextResponse(exc.message, status_code=400, media_type=TEXT_MEDIA_TYPE)


@app.exception_handler(CollaboratorError)
async def collaborator_error_handler(request: Request, exc: CollaboratorError):
    logger.error(f"❌ Collaborator failure on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=502, content={"status": "error", "error": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Unhandled error on {request.url.path}")
    return JSONResponse(status_code=500, content={"status": "error", "error": str(exc)})


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


@app.get("/.well-known/ai-plugin.json")
async def ai_plugin_manifest(request: Request, services: AdvisorServices = Depends(get_services)):
    """AI plugin manifest pointing the model at this app's OpenAPI document"""
    plugin = services.settings.ai_plugin
    base_url = str(request.base_url)
    return {
        "schema_version": "v1",
        "name_for_human": plugin.name_for_human,
        "name_for_model": plugin.name_for_model,
        "description_for_human": plugin.description_for_human,
        "description_for_model": plugin.description_for_model,
        "auth": {"type": "none"},
        "api": {"type": "openapi", "url": f"{base_url}openapi.json"},
        "logo_url": plugin.logo_url,
        "contact_email": plugin.contact_email,
        "legal_info_url": plugin.legal_info_url,
    }


@app.post(
    "/api/QueryRecommendations",
    operation_id="QueryRecommendations",
    response_class=PlainTextResponse,
    summary="Queries and summarizes recommendations.",
)
async def query_recommendations(
    request: Request,
    subscriptionId: Optional[str] = None,
    services: AdvisorServices = Depends(get_services),
):
    """
    Answer a detailed question about Azure Advisor recommendations.

    The body is the plain-text question; provide all the context the user gave.
    """
    prompt = (await request.body()).decode("utf-8")
    result = await services.query_flow.run(prompt, subscriptionId)
    return plugin_result_response(result)


@app.api_route(
    "/api/QueryScore",
    methods=["GET", "POST"],
    operation_id="QueryScore",
    response_class=PlainTextResponse,
    summary="Queries and returns the Azure Advisor score for Cost, Security, High Availability, "
            "Operational Excellence and Performance",
)
async def query_score(subscriptionId: Optional[str] = None, services: AdvisorServices = Depends(get_services)):
    if not subscriptionId:
        logger.error("No subscription id provided in the request!")
        raise ValidationError(MISSING_SUBSCRIPTION_MESSAGE)

    logger.info(f"Processing request for subscription: {subscriptionId}")
    scores = await services.score_client.get_scores(subscriptionId)
    return PlainTextResponse(scores_to_json(scores), media_type=TEXT_MEDIA_TYPE)


@app.api_route(
    "/api/QueryCostSavings",
    methods=["GET", "POST"],
    operation_id="QueryCostSavings",
    response_class=PlainTextResponse,
    summary="Queries and returns information about potential cost savings.",
)
async def query_cost_savings(subscriptionId: Optional[str] = None, services: AdvisorServices = Depends(get_services)):
    if not subscriptionId:
        logger.error("No subscription id provided in the request!")
        raise ValidationError(MISSING_SUBSCRIPTION_MESSAGE)

    logger.info(f"Processing request for subscription: {subscriptionId}")
    savings = await services.cost_savings_client.get_cost_savings(subscriptionId)
    return PlainTextResponse(savings, media_type=TEXT_MEDIA_TYPE)


@app.post("/api/plugins/{operation_id}", response_class=PlainTextResponse)
async def run_plugin_operation(
    operation_id: str,
    request: Request,
    services: AdvisorServices = Depends(get_services),
):
    """
    Run any operation of the plugin by id.

    The body becomes the input variable; query string parameters become the other variables.
    """
    body = (await request.body()).decode("utf-8")
    context = ContextVariables(body)
    for name, value in request.query_params.items():
        context[name] = value

    result = await services.plugin_runner.run_operation(operation_id, context)
    return plugin_result_response(result)


if __name__ == "__main__":
    import os
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
