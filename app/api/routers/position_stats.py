from __future__ import annotations

import logging
from fractions import Fraction

from fastapi import APIRouter, Depends, HTTPException, Path

from app.api.deps import get_cached_position_stats_use_case
from app.api.schemas.position_stats import (
    AmountResponse,
    PositionStatsResponse,
    PriceResponse,
    RateResponse,
    TokenResponse,
)
from app.application.dto.position_stats import GetCachedPositionStatsInput
from app.application.use_cases.get_cached_position_stats import GetCachedPositionStatsUseCase
from app.domain.entities.position import CurrencyAmount, Price, Token, fraction_to_decimal
from app.domain.exceptions import PositionStatsErrorKind

router = APIRouter()
logger = logging.getLogger(__name__)

STATUS_BY_ERROR_KIND = {
    PositionStatsErrorKind.POSITION_NOT_FOUND: 404,
    PositionStatsErrorKind.POOL_NOT_FOUND: 404,
    PositionStatsErrorKind.POSITION_DATA_ERROR: 422,
    PositionStatsErrorKind.UNSUPPORTED_CHAIN: 400,
}


def _fraction_to_str(value: Fraction) -> str:
    return f"{value.numerator}/{value.denominator}"


def _token(token: Token) -> TokenResponse:
    return TokenResponse(address=token.address, symbol=token.symbol, name=token.name, decimals=token.decimals)


def _price(price: Price | None) -> PriceResponse | None:
    if price is None:
        return None
    return PriceResponse(
        base=price.base.symbol,
        quote=price.quote.symbol,
        value=str(price.to_decimal()),
        raw=_fraction_to_str(price.raw),
    )


def _amounts(amounts: tuple[CurrencyAmount, CurrencyAmount]) -> list[AmountResponse]:
    return [
        AmountResponse(
            token=amount.token.address,
            symbol=amount.token.symbol,
            value=str(amount.to_decimal()),
            raw=_fraction_to_str(amount.raw),
        )
        for amount in amounts
    ]


def _rates(values: tuple[Fraction, Fraction]) -> list[RateResponse]:
    return [RateResponse(value=str(fraction_to_decimal(value)), fraction=_fraction_to_str(value)) for value in values]


@router.get("/v1/positions/{chain}/{position_id}/stats", response_model=PositionStatsResponse)
def get_position_stats(
    chain: str,
    position_id: int = Path(..., ge=0, description="Token id da posicao no position manager."),
    refresh: bool = False,
    use_case: GetCachedPositionStatsUseCase = Depends(get_cached_position_stats_use_case),
):
    try:
        result = use_case.execute(
            GetCachedPositionStatsInput(
                chain=chain.strip().lower(),
                position_id=position_id,
                refresh=refresh,
            )
        )
    except RuntimeError as exc:
        logger.warning(
            "position_stats_router: upstream_error chain=%s position_id=%s detail=%s",
            chain,
            position_id,
            exc,
        )
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    if result.error is not None:
        logger.warning(
            "position_stats_router: failed chain=%s position_id=%s kind=%s detail=%s",
            chain,
            position_id,
            result.error.kind.value,
            result.error.message,
        )
        raise HTTPException(
            status_code=STATUS_BY_ERROR_KIND[result.error.kind],
            detail={
                "code": result.error.kind.value,
                "message": result.error.message,
                "chain": result.error.chain,
                "position_id": str(result.error.position_id),
            },
        )

    snapshot = result.snapshot
    return PositionStatsResponse(
        position_id=str(snapshot.position_id),
        chain=snapshot.chain,
        token0=_token(snapshot.token0),
        token1=_token(snapshot.token1),
        lower_tick_price=_price(snapshot.lower_tick_price),
        upper_tick_price=_price(snapshot.upper_tick_price),
        current_price=_price(snapshot.current_price),
        uncollected=_amounts(snapshot.uncollected),
        current=_amounts(snapshot.current),
        deposited=_amounts(snapshot.deposited),
        avg_deposit_price=_price(snapshot.avg_deposit_price),
        withdrawn=_amounts(snapshot.withdrawn),
        avg_withdrawn_price=_price(snapshot.avg_withdrawn_price),
        collected=_amounts(snapshot.collected),
        avg_collected_price=_price(snapshot.avg_collected_price),
        total_yield=_amounts(snapshot.total_yield),
        avg_yield_price=_price(snapshot.avg_yield_price),
        date_opened=snapshot.date_opened,
        date_closed=snapshot.date_closed,
        duration_held_ms=snapshot.duration_held_ms,
        yield_per_day=_amounts(snapshot.yield_per_day),
        apr=_rates(snapshot.apr),
        impermanent_loss_lower=str(snapshot.impermanent_loss_lower),
        impermanent_loss_upper=str(snapshot.impermanent_loss_upper),
        break_even_days_lower=str(snapshot.break_even_days_lower),
        break_even_days_upper=str(snapshot.break_even_days_upper),
        daily_collected=_amounts(snapshot.daily_collected),
        daily_apr=_rates(snapshot.daily_apr),
        cached=result.from_cache,
    )
