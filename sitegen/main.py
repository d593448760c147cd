import json
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from sitegen.assets import AssetGenerator
from sitegen.audit import SuggestionGenerator
from sitegen.cache import CacheRegistry, cache_report
from sitegen.llm_client import CompletionError, CompletionGateway, ConfigurationError
from sitegen.llm_parsing import MalformedResponseError
from sitegen.models import SiteDocument, SuggestionAction
from sitegen.mutation import MutationEngine, apply_suggestion_action, site_from_editor_state
from sitegen.orchestrator import SiteOrchestrator
from sitegen.redis_cache import REDIS_URL, RedisFingerprintCache
from sitegen.validators import collect_errors

if not logging.getLogger().handlers:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

log = logging.getLogger(__name__)


def _build_caches() -> CacheRegistry:
    site_cache = None
    if REDIS_URL and not os.getenv("PYTEST_CURRENT_TEST"):
        try:
            site_cache = RedisFingerprintCache(REDIS_URL)
            log.info("cache.backend: site cache on redis")
        except ValueError:
            log.exception("cache.backend: bad REDIS_URL; using in-memory site cache")
    return CacheRegistry.from_env(site_cache=site_cache)


gateway: Any = None
caches: CacheRegistry = None  # type: ignore[assignment]
orchestrator: SiteOrchestrator = None  # type: ignore[assignment]
mutations: MutationEngine = None  # type: ignore[assignment]
suggestions: SuggestionGenerator = None  # type: ignore[assignment]
assets: AssetGenerator = None  # type: ignore[assignment]


def configure(new_gateway: Any = None, new_caches: Optional[CacheRegistry] = None) -> None:
    """(Re)wire the pipeline. Tests call this with a fake gateway."""
    global gateway, caches, orchestrator, mutations, suggestions, assets
    gateway = new_gateway if new_gateway is not None else CompletionGateway()
    caches = new_caches if new_caches is not None else _build_caches()
    orchestrator = SiteOrchestrator(gateway, caches)
    mutations = MutationEngine(gateway)
    suggestions = SuggestionGenerator(gateway)
    assets = AssetGenerator(gateway)


configure()


@asynccontextmanager
async def lifespan(app: FastAPI):
    status = gateway.status() if hasattr(gateway, "status") else {}
    log.info(
        "startup: model=%s has_token=%s site_cache=%s",
        status.get("model"),
        status.get("has_token"),
        type(caches.site).__name__,
    )
    if not status.get("has_token"):
        log.warning("startup: OPENAI_API_KEY is not set; generation requests will fail")
    yield


app = FastAPI(title="sitegen", lifespan=lifespan)

allow_origins = [o.strip() for o in os.getenv("ALLOW_ORIGINS", "*").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    start = time.time()
    request.state.request_id = rid
    response = None
    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
    finally:
        dur_ms = int((time.time() - start) * 1000)
        log.info(
            "http.request: rid=%s method=%s path=%s status=%s dur_ms=%d",
            rid,
            request.method,
            request.url.path,
            getattr(response, "status_code", "?"),
            dur_ms,
        )


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class GenerateOptions(_Body):
    industry: Optional[str] = None
    tone: Optional[str] = None
    colors: Optional[str] = None
    features: Optional[List[str]] = None
    template_id: Optional[str] = Field(default=None, alias="templateId")


class GenerateRequest(_Body):
    # Typed loosely so a non-string prompt is a 400, not a 422
    prompt: Any = None
    options: Optional[GenerateOptions] = None


class CommandRequest(_Body):
    command: Any = None
    current_data: Dict[str, Any] = Field(default_factory=dict, alias="currentData")
    current_colors: Dict[str, Any] = Field(default_factory=dict, alias="currentColors")
    current_fonts: Dict[str, Any] = Field(default_factory=dict, alias="currentFonts")
    current_section_order: List[str] = Field(default_factory=list, alias="currentSectionOrder")
    site: Optional[SiteDocument] = None


class SuggestionsRequest(_Body):
    current_data: Dict[str, Any] = Field(default_factory=dict, alias="currentData")
    analytics: Optional[Dict[str, Any]] = None


class ApplySuggestionRequest(_Body):
    site: SiteDocument
    action: SuggestionAction


class SectionRequest(_Body):
    section_type: Any = Field(default=None, alias="sectionType")
    industry: Optional[str] = None
    business_name: Optional[str] = Field(default=None, alias="businessName")
    tone: Optional[str] = None
    context: Optional[str] = None


class SeoRequest(_Body):
    content: Any = None
    industry: Optional[str] = None
    brand_name: Optional[str] = Field(default=None, alias="brandName")


class PaletteRequest(_Body):
    industry: Optional[str] = None
    mood: Optional[str] = None
    brand_name: Optional[str] = Field(default=None, alias="brandName")


class FontsRequest(_Body):
    industry: Optional[str] = None
    mood: Optional[str] = None
    current_fonts: Optional[Dict[str, Any]] = Field(default=None, alias="currentFonts")


class ValidateRequest(BaseModel):
    site: Dict[str, Any]


def _error(status_code: int, error: str, details: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "details": details})


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/llm/status")
def llm_status_endpoint() -> Dict[str, Any]:
    return gateway.status()


@app.post("/generate")
async def generate_endpoint(req: GenerateRequest):
    if not isinstance(req.prompt, str) or not req.prompt.strip():
        return _error(400, "Invalid prompt", "Please provide a description of your website")

    options = req.options.model_dump(by_alias=True, exclude_none=True) if req.options else {}
    log.info("generate: prompt=%r options=%s", req.prompt[:100], sorted(options))
    try:
        result = await orchestrator.generate(req.prompt, options)
    except ConfigurationError as exc:
        log.error("generate: configuration error: %s", exc)
        return _error(500, "Failed to generate website", str(exc))
    except Exception as exc:
        log.exception("generate: failed")
        return _error(500, "Failed to generate website", str(exc) or "An unexpected error occurred. Please try again.")
    return result.to_payload()


@app.post("/command")
async def command_endpoint(req: CommandRequest):
    if not isinstance(req.command, str) or not req.command.strip():
        return _error(400, "Invalid command", "Please provide a command describing the change")

    try:
        site = req.site or site_from_editor_state(
            req.current_data,
            req.current_colors,
            req.current_fonts,
            req.current_section_order,
        )
    except ValidationError as exc:
        return _error(400, "Invalid site state", str(exc))

    try:
        result = await mutations.apply(req.command, site)
    except (CompletionError, MalformedResponseError, ValidationError) as exc:
        log.warning("command: failed %s: %s", type(exc).__name__, exc)
        return _error(500, "Failed to process command", str(exc))
    return {
        "success": True,
        "changes": result.changes.model_dump(mode="json", by_alias=True, exclude_none=True),
        "explanation": result.explanation,
        "additionalSuggestions": result.additional_suggestions,
        "site": result.site.to_payload(),
    }


@app.post("/suggestions")
async def suggestions_endpoint(req: SuggestionsRequest):
    if not req.current_data:
        return _error(400, "Invalid request", "currentData is required")
    try:
        return await suggestions.suggest(req.current_data, req.analytics)
    except (CompletionError, MalformedResponseError) as exc:
        log.warning("suggestions: failed %s: %s", type(exc).__name__, exc)
        return _error(500, "Failed to generate suggestions", str(exc))


@app.post("/suggestions/apply")
def apply_suggestion_endpoint(req: ApplySuggestionRequest):
    try:
        result = apply_suggestion_action(req.site, req.action)
    except (ValueError, ValidationError) as exc:
        return _error(400, "Invalid action", str(exc))
    return {
        "success": True,
        "changes": result.changes.model_dump(mode="json", by_alias=True, exclude_none=True),
        "explanation": result.explanation,
        "site": result.site.to_payload(),
    }


@app.post("/sections/generate")
async def section_endpoint(req: SectionRequest):
    if not isinstance(req.section_type, str) or not req.section_type.strip():
        return _error(400, "Section type is required", "Please provide a sectionType such as hero or about")
    return await assets.section(
        req.section_type.strip(),
        industry=req.industry,
        business_name=req.business_name,
        tone=req.tone,
        context=req.context,
    )


@app.post("/seo/generate")
async def seo_endpoint(req: SeoRequest):
    if not req.content:
        return _error(400, "Content is required", "Please provide the page content to describe")
    content = req.content if isinstance(req.content, str) else json.dumps(req.content, ensure_ascii=False)
    try:
        return await assets.seo(content, industry=req.industry, brand_name=req.brand_name)
    except ConfigurationError as exc:
        log.error("seo: configuration error: %s", exc)
        return _error(500, "OpenAI API key not configured", str(exc))


@app.post("/colors/generate")
async def palette_endpoint(req: PaletteRequest):
    if not req.industry and not req.mood:
        return _error(400, "Industry or mood is required", "Please provide an industry or a mood")
    try:
        return await assets.palette(industry=req.industry, mood=req.mood, brand_name=req.brand_name)
    except ConfigurationError as exc:
        log.error("colors: configuration error: %s", exc)
        return _error(500, "OpenAI API key not configured", str(exc))


@app.post("/fonts/suggest")
async def fonts_endpoint(req: FontsRequest):
    return await assets.fonts(industry=req.industry, mood=req.mood, current_fonts=req.current_fonts)


@app.get("/cache/stats")
def cache_stats() -> Dict[str, Any]:
    return cache_report(caches)


@app.post("/cache/clear")
def cache_clear() -> Dict[str, Any]:
    caches.clear()
    return {"success": True, "cleared": list(caches.named())}


@app.post("/validate")
def validate_endpoint(req: ValidateRequest):
    """
    Validate a `site` document against schemas/site_schema.json and the typed model.
    Returns 200 and {"detail":{"valid":true}} on success,
            422 and {"detail":{"valid":false,"errors":[...]}} on failure.
    """
    errors = collect_errors(req.site)
    detail: Dict[str, Any] = {"valid": not errors}
    if errors:
        detail["errors"] = errors
        return JSONResponse(status_code=422, content={"detail": detail})
    return {"detail": detail}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "8000")))
