"""Chat router for mcpchatd API.

Handles chat operations: run a turn, cancel a turn, save a message,
read history, list and delete sessions.

Library errors (UnauthorizedError, RateLimitedError, ...) propagate to the
exception handlers registered in main.py.
"""

import logging
from typing import Annotated

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Query

from mcpchat_library.errors import UnauthorizedError
from mcpchat_library.identity import UserIdentity
from mcpchat_library.orchestration.engine import ChatEngine
from mcpchat_library.sessions.store import SessionStore
from mcpchat_library.sessions.store import generate_session_id
from mcpchat_library.sessions.store import validate_session_id

from ..dependencies import get_chat_engine
from ..dependencies import get_identity
from ..dependencies import get_session_store
from ..models import CancelResponse
from ..models import ChatRequest
from ..models import HistoryResponse
from ..models import SaveMessageRequest
from ..models import SaveMessageResponse
from ..models import SessionListResponse
from ..models import SessionSummary
from ..models import TurnResponse
from ..services.turn_registry import TurnRegistry
from ..services.turn_registry import get_turn_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/chat", tags=["chat"])


def _require_chat(identity: UserIdentity) -> None:
    if not identity.can_use_chat():
        raise UnauthorizedError(f"User {identity.user_id} is not permitted to use chat")


@router.post("", response_model=TurnResponse)
async def run_turn(
    request: ChatRequest,
    identity: Annotated[UserIdentity, Depends(get_identity)],
    engine: Annotated[ChatEngine, Depends(get_chat_engine)],
    registry: Annotated[TurnRegistry, Depends(get_turn_registry)],
) -> TurnResponse:
    """Run one chat turn.

    Args:
        request: User message and optional session id
        identity: Caller identity
        engine: Chat engine dependency
        registry: In-flight turn registry

    Returns:
        Stored user message and finalized assistant message

    Raises:
        401/403/429/503/409 via registered exception handlers
    """
    session_id = validate_session_id(request.session_id) if request.session_id else generate_session_id()
    result = await registry.run(
        identity.user_id,
        session_id,
        engine.run_turn(identity, session_id, request.message),
    )
    return TurnResponse(
        session_id=result.session_id,
        user_message=result.user_message,
        assistant_message=result.assistant_message,
        summarized=result.summarized,
    )


@router.post("/{session_id}/cancel", response_model=CancelResponse)
async def cancel_turn(
    session_id: str,
    identity: Annotated[UserIdentity, Depends(get_identity)],
    registry: Annotated[TurnRegistry, Depends(get_turn_registry)],
) -> CancelResponse:
    """Cancel the caller's in-flight turn for a session.

    Returns:
        Whether a running turn was cancelled
    """
    cancelled = await registry.cancel(identity.user_id, session_id)
    return CancelResponse(session_id=session_id, cancelled=cancelled)


@router.post("/messages", response_model=SaveMessageResponse, status_code=201)
async def save_message(
    request: SaveMessageRequest,
    identity: Annotated[UserIdentity, Depends(get_identity)],
    engine: Annotated[ChatEngine, Depends(get_chat_engine)],
) -> SaveMessageResponse:
    """Persist one message without running a turn."""
    session_id = request.session_id or generate_session_id()
    message = engine.save_message(identity, session_id, request.message, request.role)
    return SaveMessageResponse(
        session_id=session_id,
        role=message.role.value,
        timestamp=message.timestamp,
    )


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    identity: Annotated[UserIdentity, Depends(get_identity)],
    engine: Annotated[ChatEngine, Depends(get_chat_engine)],
    session_id: Annotated[str | None, Query(alias="sessionId")] = None,
    limit: Annotated[int | None, Query(ge=1)] = None,
) -> HistoryResponse:
    """Get recent messages of a session.

    Returns an empty history when no session id is given.
    """
    if not session_id:
        return HistoryResponse(history=[])
    return HistoryResponse(history=engine.get_history(identity, session_id, limit))


@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions(
    identity: Annotated[UserIdentity, Depends(get_identity)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> SessionListResponse:
    """List the caller's sessions, most recently updated first."""
    _require_chat(identity)
    sessions = store.list_sessions(identity.user_id)
    return SessionListResponse(
        sessions=[
            SessionSummary(
                session_id=session.session_id,
                message_count=len(session.messages),
                created_at=session.created_at,
                updated_at=session.updated_at,
            )
            for session in sessions
        ]
    )


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(
    session_id: str,
    identity: Annotated[UserIdentity, Depends(get_identity)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> None:
    """Delete one of the caller's sessions. Deleting a missing session is a no-op."""
    _require_chat(identity)
    store.delete_session(session_id, identity.user_id)
