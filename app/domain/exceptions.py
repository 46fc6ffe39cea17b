from __future__ import annotations

from enum import Enum


class DomainError(Exception):
    """Base para erros de dominio."""


class PositionStatsErrorKind(str, Enum):
    POSITION_NOT_FOUND = "POSITION_NOT_FOUND"
    POSITION_DATA_ERROR = "POSITION_DATA_ERROR"
    POOL_NOT_FOUND = "POOL_NOT_FOUND"
    UNSUPPORTED_CHAIN = "UNSUPPORTED_CHAIN"


class PositionStatsError(DomainError):
    """Falha conhecida ao calcular estatisticas de uma posicao."""

    kind: PositionStatsErrorKind

    def __init__(self, message: str, *, chain: str | None = None, position_id: int | None = None):
        super().__init__(message)
        self.chain = chain
        self.position_id = position_id


class PositionNotFoundError(PositionStatsError):
    """Posicao nao existe (ownerOf falhou)."""

    kind = PositionStatsErrorKind.POSITION_NOT_FOUND


class PositionDataError(PositionStatsError):
    """Dados da posicao ilegiveis ou incompletos."""

    kind = PositionStatsErrorKind.POSITION_DATA_ERROR


class PoolNotFoundError(PositionStatsError):
    """Factory retornou o endereco zero para o par/fee."""

    kind = PositionStatsErrorKind.POOL_NOT_FOUND


class UnsupportedChainError(PositionStatsError):
    """Chain sem RPC ou enderecos configurados."""

    kind = PositionStatsErrorKind.UNSUPPORTED_CHAIN
