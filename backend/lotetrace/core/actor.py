"""
Actor performing a state change: the system itself or an authenticated user
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class ActorType(str, enum.Enum):
    SYSTEM = "system"
    USER = "user"


@dataclass(frozen=True)
class Actor:
    type: ActorType
    user_id: Optional[str] = None

    @classmethod
    def system(cls) -> "Actor":
        return cls(ActorType.SYSTEM)

    @classmethod
    def user(cls, user_id: str) -> "Actor":
        if not user_id:
            raise ValueError("A user actor requires a user id")
        return cls(ActorType.USER, str(user_id))

    @property
    def is_system(self) -> bool:
        return self.type is ActorType.SYSTEM

    def __str__(self) -> str:
        return "system" if self.is_system else f"user:{self.user_id}"
