from __future__ import annotations

from typing import Protocol

from app.domain.entities.position import Token


class TokenPort(Protocol):
    def get_token(self, *, address: str) -> Token:
        ...
