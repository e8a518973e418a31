"""Status router for mcpchatd API.

Provides health check and status information.
"""

import logging
import time
from typing import Annotated

from fastapi import APIRouter
from fastapi import Depends

from mcpchat_library.config.settings import ChatSettings

from .. import __version__
from ..dependencies import get_settings
from ..models import StatusResponse
from ..services.turn_registry import TurnRegistry
from ..services.turn_registry import get_turn_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["status"])

# Track daemon start time for uptime calculation
_start_time = time.time()


@router.get("/status", response_model=StatusResponse)
async def get_status(
    settings: Annotated[ChatSettings, Depends(get_settings)],
    registry: Annotated[TurnRegistry, Depends(get_turn_registry)],
) -> StatusResponse:
    """Get daemon status.

    Returns:
        Daemon status including version, uptime and which collaborators are configured
    """
    return StatusResponse(
        status="running",
        version=__version__,
        uptime_seconds=time.time() - _start_time,
        completion_configured=settings.completion_configured,
        tools_configured=settings.tools_configured,
        history_enabled=settings.history_enabled,
        active_turns=registry.active_count(),
    )


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint.

    Returns:
        Simple health status
    """
    return {"status": "healthy"}
