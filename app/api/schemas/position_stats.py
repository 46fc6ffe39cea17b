from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class TokenResponse(BaseModel):
    address: str
    symbol: str
    name: str
    decimals: int


class PriceResponse(BaseModel):
    base: str = Field(..., description="Simbolo do token base.")
    quote: str = Field(..., description="Simbolo do token de cotacao.")
    value: str = Field(..., description="Preco ajustado pelos decimais (quote por base).")
    raw: str = Field(..., description="Fracao exata em unidades brutas (n/d).")


class AmountResponse(BaseModel):
    token: str = Field(..., description="Endereco do token.")
    symbol: str
    value: str = Field(..., description="Quantidade em unidades humanas.")
    raw: str = Field(..., description="Quantidade exata em unidades minimas (n/d).")


class RateResponse(BaseModel):
    value: str = Field(..., description="Taxa anualizada em decimal.")
    fraction: str = Field(..., description="Taxa anualizada exata (n/d).")


class PositionStatsResponse(BaseModel):
    position_id: str
    chain: str
    token0: TokenResponse
    token1: TokenResponse
    lower_tick_price: PriceResponse
    upper_tick_price: PriceResponse
    current_price: PriceResponse
    uncollected: list[AmountResponse] = Field(..., description="[token0, token1].")
    current: list[AmountResponse]
    deposited: list[AmountResponse]
    avg_deposit_price: PriceResponse
    withdrawn: list[AmountResponse]
    avg_withdrawn_price: PriceResponse | None = None
    collected: list[AmountResponse]
    avg_collected_price: PriceResponse | None = None
    total_yield: list[AmountResponse]
    avg_yield_price: PriceResponse
    date_opened: datetime
    date_closed: datetime | None = None
    duration_held_ms: int
    yield_per_day: list[AmountResponse]
    apr: list[RateResponse]
    impermanent_loss_lower: str
    impermanent_loss_upper: str
    break_even_days_lower: str = Field(..., description="Dias para compensar a IL; pode ser Infinity.")
    break_even_days_upper: str
    daily_collected: list[AmountResponse]
    daily_apr: list[RateResponse]
    cached: bool = Field(False, description="True quando servido pelo cache.")
