"""Caller identity passed into every engine operation."""

from dataclasses import dataclass
from typing import Protocol


class Identity(Protocol):
    user_id: str

    def can_use_chat(self) -> bool: ...


@dataclass(frozen=True)
class UserIdentity:
    """Identity resolved by the host from its own authentication."""

    user_id: str
    chat_allowed: bool = True

    def can_use_chat(self) -> bool:
        return self.chat_allowed and bool(self.user_id)
