from __future__ import annotations

from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.config import Settings, load_settings
from app.core.errors import ConfigurationError, RecordNotFoundError, UpstreamFetchError, ValidationError
from app.core.logging import logger, set_log_context, set_trace_id, setup_logging
from app.db.session import build_engine
from app.routers.bills import build_bills_router
from app.routers.gifts import build_gifts_router
from app.routers.reminders import build_reminders_router
from app.routers.settings import build_settings_router
from app.services.bills import BillService
from app.services.gifts import GiftService
from app.services.profile import JsonProfileStore, ProfileService, ProfileStore
from app.services.reminder_dispatcher import get_today, reference_zone, run_reminder_dispatch
from app.services.repositories import DataRepo
from app.services.sql_repo import SqlRepo
from app.services.twilio import MessagingGateway, build_gateway


async def scheduled_reminder_run(repo: DataRepo, app: FastAPI, settings: Settings) -> None:
    report = await run_reminder_dispatch(repo, app.state.gateway, settings)
    if not report.success:
        logger.warning("Scheduled reminder run failed error=%s", report.error)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def on_validation_error(request: Request, exc: ValidationError):
        return JSONResponse({"success": False, "error": str(exc), "field": exc.field}, status_code=400)

    @app.exception_handler(RecordNotFoundError)
    async def on_not_found(request: Request, exc: RecordNotFoundError):
        return JSONResponse({"success": False, "error": str(exc)}, status_code=404)

    @app.exception_handler(ConfigurationError)
    async def on_configuration_error(request: Request, exc: ConfigurationError):
        return JSONResponse({"success": False, "error": str(exc)}, status_code=503)

    @app.exception_handler(UpstreamFetchError)
    async def on_upstream_error(request: Request, exc: UpstreamFetchError):
        logger.error("Upstream failure path=%s error=%s", request.url.path, exc)
        return JSONResponse({"success": False, "error": str(exc)}, status_code=500)


def create_app(
    settings: Optional[Settings] = None,
    repo: Optional[DataRepo] = None,
    gateway: Optional[MessagingGateway] = None,
    profile_store: Optional[ProfileStore] = None,
) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings.log_level)
    repo = repo or SqlRepo(build_engine(settings))
    profile_store = profile_store or JsonProfileStore(settings.profile_store_path)

    app = FastAPI(title="Bill & Gift Tracker")
    app.state.settings = settings
    app.state.repo = repo
    app.state.gateway = gateway if gateway is not None else build_gateway(settings)

    def gateway_provider() -> Optional[MessagingGateway]:
        return app.state.gateway

    def today():
        return get_today(settings)

    owner_id = settings.owner_user_id
    app.include_router(build_bills_router(BillService(repo, owner_id, today)))
    app.include_router(build_gifts_router(GiftService(repo, owner_id, today)))
    app.include_router(build_settings_router(ProfileService(profile_store, repo, owner_id), gateway_provider))
    app.include_router(build_reminders_router(repo, gateway_provider, settings))
    _register_error_handlers(app)

    @app.middleware("http")
    async def trace_requests(request: Request, call_next):
        set_trace_id(request.headers.get("X-Request-Id"))
        set_log_context(owner_id=owner_id)
        return await call_next(request)

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok"}

    @app.on_event("startup")
    async def on_startup() -> None:
        if not settings.scheduler_enabled:
            return
        zone = reference_zone(settings.timezone)
        scheduler = AsyncIOScheduler(timezone=zone)
        scheduler.add_job(
            scheduled_reminder_run,
            CronTrigger(hour=settings.reminder_hour, minute=0, timezone=zone),
            args=[repo, app, settings],
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )
        scheduler.start()
        app.state.reminder_scheduler = scheduler
        logger.info("Reminder scheduler started hour=%s timezone=%s", settings.reminder_hour, settings.timezone)

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        scheduler = getattr(app.state, "reminder_scheduler", None)
        if scheduler:
            scheduler.shutdown(wait=False)

    return app


app = create_app()
