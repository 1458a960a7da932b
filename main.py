"""
Lease Analyzer - Main Server
App factory with startup-time service initialization.
"""

import io
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response, StreamingResponse

from lib.ai_service import LeaseModelClient
from lib.analysis import LeaseAnalysisService
from lib.auth import IdentityProvider, SupabaseIdentityProvider, extract_bearer_token
from lib.config import AppConfig
from lib.errors import (
    AnalysisForbiddenError,
    AnalysisNotFoundError,
    AnalysisValidationError,
    AuthError,
    ProfileNotFoundError,
)
from lib.history import HistoryService
from lib.report_layout import render
from lib.reporting import ReportGenerator, report_file_name
from lib.storage import AnalysisRepository, JsonFileStore
from lib.validation import AnalyzeLeaseRequest, UpdateProfileRequest

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    config: AppConfig
    identity: IdentityProvider
    repository: AnalysisRepository
    analysis_service: LeaseAnalysisService
    history: HistoryService
    report_generator: ReportGenerator


def _get_services(request: Request) -> AppServices:
    services: Optional[AppServices] = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Application not initialized")
    return services


async def _require_user(request: Request, services: AppServices) -> str:
    try:
        token = extract_bearer_token(request.headers.get("Authorization"))
        user_id = await services.identity.verify(token)
    except AuthError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    try:
        await services.history.ensure_profile(user_id)
    except Exception as exc:
        logger.exception("Profile bootstrap failed for %s", user_id)
        raise HTTPException(status_code=500, detail="Internal server error during profile setup") from exc
    return user_id


def create_app(config_override: Optional[AppConfig] = None) -> FastAPI:
    if config_override is not None:
        app_title = config_override.APP_NAME
        app_version = config_override.VERSION
        allowed_origins = [config_override.APP_BASE_URL] if config_override.APP_BASE_URL else []
    else:
        bootstrap_config = AppConfig.load()
        app_title = bootstrap_config.APP_NAME
        app_version = bootstrap_config.VERSION
        allowed_origins = [bootstrap_config.APP_BASE_URL] if bootstrap_config.APP_BASE_URL else []

    @asynccontextmanager
    async def lifespan(app_instance: FastAPI) -> AsyncIterator[None]:
        config = config_override or AppConfig.load()
        try:
            config.validate_secrets()
        except ValueError as exc:
            logger.critical(str(exc))
            raise RuntimeError(str(exc)) from exc

        if not config.GEMINI_API_KEY:
            logger.warning("GEMINI_API_KEY not set; analyses will use the fallback assessment")

        model_client = LeaseModelClient(
            api_key=config.GEMINI_API_KEY,
            base_url=config.GEMINI_BASE_URL,
            model_name=config.ANALYSIS_MODEL,
            temperature=config.MODEL_TEMPERATURE,
            max_output_tokens=config.MODEL_MAX_OUTPUT_TOKENS,
            timeout_seconds=config.MODEL_TIMEOUT_SECONDS,
        )
        identity = SupabaseIdentityProvider(
            base_url=str(config.SUPABASE_URL),
            api_key=str(config.SUPABASE_ANON_KEY),
            timeout_seconds=config.AUTH_TIMEOUT_SECONDS,
        )
        repository = AnalysisRepository(JsonFileStore(str(config.data_path)))

        app_instance.state.services = AppServices(
            config=config,
            identity=identity,
            repository=repository,
            analysis_service=LeaseAnalysisService(
                model_client,
                repository,
                min_text_length=config.MIN_LEASE_TEXT_LENGTH,
            ),
            history=HistoryService(repository),
            report_generator=ReportGenerator(),
        )
        app_instance.title = config.APP_NAME
        app_instance.version = config.VERSION
        logger.info("Starting %s v%s", config.APP_NAME, config.VERSION)
        try:
            yield
        finally:
            app_instance.state.services = None

    app = FastAPI(title=app_title, version=app_version, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-App-Version"],
    )

    app.state.services = None

    @app.middleware("http")
    async def add_version_header(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        response: Response = await call_next(request)
        services: Optional[AppServices] = getattr(request.app.state, "services", None)
        if services is not None:
            response.headers["X-App-Version"] = services.config.VERSION
        return response

    @app.get("/health")
    async def health_check(request: Request) -> dict:
        services: Optional[AppServices] = getattr(request.app.state, "services", None)
        version = services.config.VERSION if services else "uninitialized"
        return {
            "status": "healthy" if services else "starting",
            "version": version,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/api/profile")
    async def get_profile(request: Request) -> dict[str, Any]:
        services = _get_services(request)
        user_id = await _require_user(request, services)
        try:
            profile = await services.history.get_profile(user_id)
        except ProfileNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Profile not found") from exc
        except Exception as exc:
            logger.exception("Profile fetch failed for %s", user_id)
            raise HTTPException(status_code=500, detail="Internal server error during profile fetch") from exc
        return {"profile": profile}

    @app.put("/api/profile")
    async def update_profile(request: Request, body: UpdateProfileRequest) -> dict[str, Any]:
        services = _get_services(request)
        user_id = await _require_user(request, services)
        try:
            profile = await services.history.update_profile(
                user_id,
                name=body.name,
                preferences=body.preferences,
            )
        except ProfileNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Profile not found") from exc
        except Exception as exc:
            logger.exception("Profile update failed for %s", user_id)
            raise HTTPException(status_code=500, detail="Internal server error during profile update") from exc
        return {"message": "Profile updated successfully", "profile": profile}

    @app.post("/api/analyze-lease")
    async def analyze_lease(request: Request, body: AnalyzeLeaseRequest) -> dict[str, Any]:
        services = _get_services(request)
        user_id = await _require_user(request, services)
        try:
            record = await services.analysis_service.run_analysis(
                user_id,
                body.lease_text,
                file_name=body.file_name,
                location=body.location,
            )
        except AnalysisValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except Exception as exc:
            logger.exception("Lease analysis failed for %s", user_id)
            raise HTTPException(status_code=500, detail="Internal server error during lease analysis") from exc

        message = (
            "Lease analyzed successfully with AI-powered verification"
            if record.ai_powered
            else "Lease analyzed with limited automated review"
        )
        return {"message": message, "analysis": record.to_payload()}

    @app.get("/api/analyses")
    async def list_analyses(request: Request) -> dict[str, Any]:
        services = _get_services(request)
        user_id = await _require_user(request, services)
        try:
            summaries = await services.history.list_summaries(user_id)
        except Exception as exc:
            logger.exception("Analysis history fetch failed for %s", user_id)
            raise HTTPException(
                status_code=500, detail="Internal server error during analysis history fetch"
            ) from exc
        return {"analyses": [summary.model_dump(by_alias=True) for summary in summaries]}

    async def _owned_record(request: Request, analysis_id: str):
        services = _get_services(request)
        user_id = await _require_user(request, services)
        try:
            return services, await services.history.get_detail(user_id, analysis_id)
        except AnalysisNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Analysis not found") from exc
        except AnalysisForbiddenError as exc:
            raise HTTPException(status_code=403, detail="Access denied to this analysis") from exc
        except Exception as exc:
            logger.exception("Analysis detail fetch failed for %s", analysis_id)
            raise HTTPException(
                status_code=500, detail="Internal server error during analysis detail fetch"
            ) from exc

    @app.get("/api/analysis/{analysis_id}")
    async def get_analysis(request: Request, analysis_id: str) -> dict[str, Any]:
        _, record = await _owned_record(request, analysis_id)
        return {"analysis": record.to_payload()}

    @app.get("/api/analysis/{analysis_id}/report")
    async def download_report(request: Request, analysis_id: str) -> StreamingResponse:
        services, record = await _owned_record(request, analysis_id)
        generated_on = date.today()
        try:
            document = render(record, generated_on)
            pdf_bytes = services.report_generator.generate_pdf(document)
        except Exception as exc:
            logger.exception("PDF generation failed for %s", analysis_id)
            raise HTTPException(status_code=500, detail="Failed to generate PDF report.") from exc

        filename = report_file_name(record.file_name, generated_on)
        return StreamingResponse(
            io.BytesIO(pdf_bytes),
            media_type="application/pdf",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)
