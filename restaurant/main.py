import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from restaurant.core.config import Settings, settings as default_settings
from restaurant.core.errors import Forbidden, RestaurantError

# 1. Infrastructure & Domain Imports
from restaurant.domain import models  # noqa: F401  (registers tables on Base.metadata)
from restaurant.infrastructure import database
from restaurant.infrastructure.database import Base, build_engine, build_session_factory
from restaurant.infrastructure.notification_service import NotificationService
from restaurant.infrastructure.permission_cache import PermissionCache
from restaurant.infrastructure.repositories.order_repository import PostgresOrderRepository
from restaurant.infrastructure.repositories.permission_repository import PostgresPermissionRepository
from restaurant.application.authorization import AuthorizationGate
from restaurant.application.notification_dispatcher import NotificationDispatcher
from restaurant.application.orchestrator import Orchestrator
from restaurant.application.order_state_machine import OrderStateMachine
from restaurant.application.permission_service import PermissionService
from restaurant.application.sweeper import AutoExpirySweeper
from restaurant.interfaces import orders_api, permissions_api, reviews_api
from restaurant.interfaces.INotifier import INotifier

logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# DATABASE CONNECTION (With Retry Logic)
# ---------------------------------------------------------
async def init_database(engine, retries: int, wait_seconds: float) -> None:
    for attempt in range(retries):
        try:
            logger.info(f"🔄 Attempting DB connection ({attempt + 1}/{retries})...")
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("✅ DB Connected and Tables Created.")
            return
        except OperationalError:
            logger.warning(f"⚠️ DB not ready yet. Waiting {wait_seconds}s...")
            await asyncio.sleep(wait_seconds)
    raise RuntimeError("Could not connect to DB after retries")


def create_app(config: Optional[Settings] = None, notifier: Optional[INotifier] = None) -> FastAPI:
    config = config or default_settings
    logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if config.DATABASE_URL == default_settings.DATABASE_URL:
        engine, session_factory = database.engine, database.SessionLocal
    else:
        engine = build_engine(config.DATABASE_URL)
        session_factory = build_session_factory(engine)

    # ---------------------------------------------------------
    # COMPOSITION ROOT
    # ---------------------------------------------------------
    order_repo = PostgresOrderRepository(session_factory)
    permission_service = PermissionService(
        PostgresPermissionRepository(session_factory),
        PermissionCache(config.REDIS_URL, ttl=config.PERMISSION_CACHE_TTL_SECONDS),
    )
    state_machine = OrderStateMachine()
    dispatcher = NotificationDispatcher(notifier or NotificationService(config))
    orchestrator = Orchestrator(
        order_repo=order_repo,
        permission_service=permission_service,
        gate=AuthorizationGate(permission_service),
        state_machine=state_machine,
        dispatcher=dispatcher,
    )
    sweeper = AutoExpirySweeper(order_repo, state_machine, dispatcher, interval=config.SWEEP_INTERVAL_SECONDS)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await init_database(engine, config.DB_CONNECT_RETRIES, config.DB_RETRY_WAIT_SECONDS)
        await permission_service.seed_defaults()
        dispatcher.start()
        if config.SWEEPER_ENABLED:
            sweeper.start()
        yield
        await sweeper.stop()
        await dispatcher.stop()
        await engine.dispose()

    app = FastAPI(title=config.PROJECT_NAME, lifespan=lifespan)
    app.state.orchestrator = orchestrator
    app.state.sweeper = sweeper
    app.state.permission_cache = permission_service.cache
    app.state.engine = engine

    # Include Routers
    app.include_router(orders_api.router)
    app.include_router(reviews_api.router)
    app.include_router(permissions_api.router)

    @app.exception_handler(RestaurantError)
    async def restaurant_error_handler(request: Request, exc: RestaurantError):
        if isinstance(exc, Forbidden):
            logger.info(f"⛔ {request.method} {request.url.path} -> {exc.reason.value}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.get("/")
    async def health_check(request: Request):
        try:
            async with request.app.state.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            db_status = "connected"
        except SQLAlchemyError as e:
            logger.error(f"❌ Health check DB error: {e}")
            db_status = "unreachable"
        status = "active" if db_status == "connected" else "degraded"
        return {
            "status": status,
            "system": config.PROJECT_NAME,
            "database": db_status,
            "permission_cache": request.app.state.permission_cache.mode,
        }

    return app


app = create_app()
