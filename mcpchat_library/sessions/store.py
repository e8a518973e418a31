"""Persistent chat session store."""

import logging
import re
import threading
import uuid
import weakref
from collections.abc import Callable
from datetime import UTC
from datetime import datetime
from datetime import timedelta
from pathlib import Path

from pydantic import ValidationError

from mcpchat_library.errors import NotOwnerError
from mcpchat_library.models.chat import ChatMessage
from mcpchat_library.models.chat import ChatSession

logger = logging.getLogger(__name__)

SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def validate_session_id(session_id: str) -> str:
    """Reject identifiers that are not safe as file names.

    Raises:
        ValueError: If session_id is empty, too long, or has other characters
    """
    if not SESSION_ID_PATTERN.match(session_id):
        raise ValueError(f"Invalid session id: {session_id!r}")
    return session_id


def generate_session_id() -> str:
    return f"chat_{uuid.uuid4().hex}"


class SessionStore:
    """Keyed store of chat sessions, one JSON document per session.

    Each session is a read-modify-write unit guarded by its own lock, so
    appends to different sessions never contend. Writes are atomic (temp
    file + rename); concurrent writers from separate processes resolve as
    last writer wins.
    """

    def __init__(
        self,
        storage_dir: Path,
        max_messages: int = 100,
        max_content_length: int = 50000,
        history_enabled: bool = True,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize with storage directory.

        Args:
            storage_dir: Parent directory - a chat_sessions/ subdirectory is created
            max_messages: Messages kept per session; oldest are evicted first
            max_content_length: Content longer than this is truncated on append
            history_enabled: When false, append is a no-op and read returns []
            clock: Returns the current UTC time (injectable for tests)
        """
        self.storage_dir = Path(storage_dir) / "chat_sessions"
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self.max_messages = max_messages
        self.max_content_length = max_content_length
        self.history_enabled = history_enabled
        self._clock = clock or (lambda: datetime.now(UTC))
        # Entries disappear once no caller holds the lock
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    # --- Core operations ---

    def append(self, session_id: str, user_id: str, message: ChatMessage) -> ChatMessage | None:
        """Append a message, creating the session if it does not exist.

        Args:
            session_id: Session identifier
            user_id: Caller; must own the session if it already exists
            message: Message to store (content is truncated to max_content_length)

        Returns:
            The stored message, or None when history is disabled

        Raises:
            ValueError: If session_id is invalid
            NotOwnerError: If the session belongs to another user
        """
        validate_session_id(session_id)
        if not self.history_enabled:
            return None

        stored = message
        if len(message.content) > self.max_content_length:
            stored = message.model_copy(update={"content": message.content[: self.max_content_length]})

        with self._lock_for(session_id):
            now = self._clock()
            session = self._load(session_id)
            if session is None:
                session = ChatSession(session_id=session_id, user_id=user_id, created_at=now, updated_at=now)
                logger.info(f"Created chat session {session_id} for user {user_id}")
            elif session.user_id != user_id:
                raise NotOwnerError(session_id, user_id)

            session.messages.append(stored)
            overflow = len(session.messages) - self.max_messages
            if overflow > 0:
                del session.messages[:overflow]
            session.updated_at = now
            self._write(session)

        logger.debug(f"Appended {stored.role.value} message to {session_id} ({len(stored.content)} chars)")
        return stored

    def read(self, session_id: str, user_id: str, limit: int) -> list[ChatMessage]:
        """Return the last ``limit`` messages in append order.

        Missing sessions and disabled history read as empty.

        Raises:
            ValueError: If session_id is invalid
            NotOwnerError: If the session belongs to another user
        """
        validate_session_id(session_id)
        if not self.history_enabled or limit <= 0:
            return []

        session = self.get_session(session_id)
        if session is None:
            return []
        if session.user_id != user_id:
            raise NotOwnerError(session_id, user_id)
        return session.messages[-limit:]

    def sweep_expired(self, retention_days: int) -> int:
        """Delete sessions whose last update is older than the retention period.

        Only the session currently being examined is locked. Sessions that
        disappear mid-sweep are skipped, so repeated or overlapping sweeps
        are harmless.

        Args:
            retention_days: Age threshold in days

        Returns:
            Number of sessions deleted
        """
        cutoff = self._clock() - timedelta(days=retention_days)
        removed = 0

        for path in sorted(self.storage_dir.glob("*.json")):
            session_id = path.stem
            with self._lock_for(session_id):
                try:
                    session = ChatSession.model_validate_json(path.read_text(encoding="utf-8"))
                except FileNotFoundError:
                    continue
                except (OSError, ValidationError) as e:
                    logger.warning(f"Skipping unreadable session file {path.name}: {e}")
                    continue

                if session.updated_at >= cutoff:
                    continue

                try:
                    path.unlink()
                except FileNotFoundError:
                    continue
                removed += 1

        if removed:
            logger.info(f"Swept {removed} chat sessions idle for more than {retention_days} days")
        return removed

    # --- Queries and maintenance ---

    def get_session(self, session_id: str) -> ChatSession | None:
        """Load a session document without ownership checks.

        Returns:
            The session, or None if it does not exist
        """
        validate_session_id(session_id)
        with self._lock_for(session_id):
            return self._load(session_id)

    def list_sessions(self, user_id: str) -> list[ChatSession]:
        """List the sessions owned by a user, most recently updated first."""
        sessions = []
        for path in self.storage_dir.glob("*.json"):
            try:
                session = self.get_session(path.stem)
            except ValueError as e:
                logger.warning(f"Skipping session file {path.name}: {e}")
                continue
            if session is not None and session.user_id == user_id:
                sessions.append(session)
        sessions.sort(key=lambda s: s.updated_at, reverse=True)
        return sessions

    def delete_session(self, session_id: str, user_id: str) -> bool:
        """Delete a session owned by user_id.

        Returns:
            True if deleted, False if it did not exist

        Raises:
            NotOwnerError: If the session belongs to another user
        """
        validate_session_id(session_id)
        with self._lock_for(session_id):
            session = self._load(session_id)
            if session is None:
                return False
            if session.user_id != user_id:
                raise NotOwnerError(session_id, user_id)
            self._path(session_id).unlink(missing_ok=True)

        logger.info(f"Deleted chat session {session_id}")
        return True

    # --- Internals ---

    def _path(self, session_id: str) -> Path:
        return self.storage_dir / f"{session_id}.json"

    def _lock_for(self, session_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[session_id] = lock
            return lock

    def _load(self, session_id: str) -> ChatSession | None:
        path = self._path(session_id)
        try:
            data = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        return ChatSession.model_validate_json(data)

    def _write(self, session: ChatSession) -> None:
        path = self._path(session.session_id)
        tmp_path = path.with_name(f".{path.stem}.{uuid.uuid4().hex}.tmp")
        try:
            tmp_path.write_text(session.model_dump_json(indent=2, by_alias=True), encoding="utf-8")
            tmp_path.replace(path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
