"""Health and system information endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from agent_relay import __version__
from agent_relay.api.dependencies import get_executor, get_session_service, get_settings
from agent_relay.api.schemas import CliInfoOut, ConfigInfoOut, HealthOut, InfoOut
from agent_relay.config import Settings
from agent_relay.runtime.executor import CliExecutor
from agent_relay.services import SessionService
from agent_relay.sessions.common import utc_now

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthOut)
async def health() -> HealthOut:
    return HealthOut(status="ok", timestamp=utc_now())


@router.get("/info", response_model=InfoOut)
async def info(
    settings: Settings = Depends(get_settings),
    executor: CliExecutor = Depends(get_executor),
    sessions: SessionService = Depends(get_session_service),
) -> InfoOut:
    """Package version, CLI availability and the effective configuration."""

    availability = await executor.check_availability()
    return InfoOut(
        version=__version__,
        cli=CliInfoOut(
            available=availability.available,
            version=availability.version,
            error=availability.error,
        ),
        config=ConfigInfoOut(
            db_path=str(settings.db_path),
            port=settings.server.port,
            log_level=settings.logging.level,
            default_model=settings.cli.default_model,
            cli_timeout_seconds=settings.cli.timeout_seconds,
        ),
        active_sessions=sessions.scheduler.active_key_count(),
    )
