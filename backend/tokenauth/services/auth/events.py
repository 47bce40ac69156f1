"""Domain events emitted by the authentication flows."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class UserRegistered:
    user_id: uuid.UUID
    email: str
    occurred_at: datetime


@dataclass(frozen=True, slots=True)
class UserLoggedIn:
    user_id: uuid.UUID
    email: str
    occurred_at: datetime
    ip_address: str | None = None
