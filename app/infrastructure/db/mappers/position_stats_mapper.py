from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from fractions import Fraction
from typing import Any

from app.domain.entities.position import CurrencyAmount, PositionSnapshot, Price, Token


def _fraction_to_str(value: Fraction) -> str:
    return f"{value.numerator}/{value.denominator}"


def _token_to_dict(token: Token) -> dict[str, Any]:
    return {
        "chain_id": token.chain_id,
        "address": token.address,
        "decimals": token.decimals,
        "symbol": token.symbol,
        "name": token.name,
    }


def _price_to_dict(price: Price | None) -> dict[str, Any] | None:
    if price is None:
        return None
    return {"base": price.base.address, "quote": price.quote.address, "raw": _fraction_to_str(price.raw)}


def _amounts_to_list(amounts: tuple[CurrencyAmount, CurrencyAmount]) -> list[str]:
    return [_fraction_to_str(amount.raw) for amount in amounts]


def _datetime_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def position_snapshot_to_payload(snapshot: PositionSnapshot) -> dict[str, Any]:
    return {
        "position_id": str(snapshot.position_id),
        "chain": snapshot.chain,
        "token0": _token_to_dict(snapshot.token0),
        "token1": _token_to_dict(snapshot.token1),
        "lower_tick_price": _price_to_dict(snapshot.lower_tick_price),
        "upper_tick_price": _price_to_dict(snapshot.upper_tick_price),
        "current_price": _price_to_dict(snapshot.current_price),
        "uncollected": _amounts_to_list(snapshot.uncollected),
        "current": _amounts_to_list(snapshot.current),
        "deposited": _amounts_to_list(snapshot.deposited),
        "avg_deposit_price": _price_to_dict(snapshot.avg_deposit_price),
        "withdrawn": _amounts_to_list(snapshot.withdrawn),
        "avg_withdrawn_price": _price_to_dict(snapshot.avg_withdrawn_price),
        "collected": _amounts_to_list(snapshot.collected),
        "avg_collected_price": _price_to_dict(snapshot.avg_collected_price),
        "total_yield": _amounts_to_list(snapshot.total_yield),
        "avg_yield_price": _price_to_dict(snapshot.avg_yield_price),
        "date_opened": _datetime_to_str(snapshot.date_opened),
        "date_closed": _datetime_to_str(snapshot.date_closed),
        "duration_held_ms": snapshot.duration_held_ms,
        "yield_per_day": _amounts_to_list(snapshot.yield_per_day),
        "apr": [_fraction_to_str(value) for value in snapshot.apr],
        "impermanent_loss_lower": str(snapshot.impermanent_loss_lower),
        "impermanent_loss_upper": str(snapshot.impermanent_loss_upper),
        "break_even_days_lower": str(snapshot.break_even_days_lower),
        "break_even_days_upper": str(snapshot.break_even_days_upper),
        "daily_collected": _amounts_to_list(snapshot.daily_collected),
        "daily_apr": [_fraction_to_str(value) for value in snapshot.daily_apr],
    }


def _token_from_dict(data: Mapping[str, Any]) -> Token:
    return Token(
        chain_id=int(data["chain_id"]),
        address=str(data["address"]),
        decimals=int(data["decimals"]),
        symbol=str(data["symbol"]),
        name=str(data.get("name") or ""),
    )


def map_payload_to_position_snapshot(payload: Mapping[str, Any]) -> PositionSnapshot:
    token0 = _token_from_dict(payload["token0"])
    token1 = _token_from_dict(payload["token1"])
    tokens = {token0.address.lower(): token0, token1.address.lower(): token1}

    def price(data: Mapping[str, Any] | None) -> Price | None:
        if data is None:
            return None
        return Price(
            base=tokens[str(data["base"]).lower()],
            quote=tokens[str(data["quote"]).lower()],
            raw=Fraction(data["raw"]),
        )

    def amounts(values: list[str]) -> tuple[CurrencyAmount, CurrencyAmount]:
        return (
            CurrencyAmount(token=token0, raw=Fraction(values[0])),
            CurrencyAmount(token=token1, raw=Fraction(values[1])),
        )

    def pair(values: list[str]) -> tuple[Fraction, Fraction]:
        return Fraction(values[0]), Fraction(values[1])

    def moment(value: str | None) -> datetime | None:
        return datetime.fromisoformat(value) if value else None

    return PositionSnapshot(
        position_id=int(payload["position_id"]),
        chain=str(payload["chain"]),
        lower_tick_price=price(payload["lower_tick_price"]),
        upper_tick_price=price(payload["upper_tick_price"]),
        current_price=price(payload["current_price"]),
        uncollected=amounts(payload["uncollected"]),
        current=amounts(payload["current"]),
        deposited=amounts(payload["deposited"]),
        avg_deposit_price=price(payload["avg_deposit_price"]),
        withdrawn=amounts(payload["withdrawn"]),
        avg_withdrawn_price=price(payload.get("avg_withdrawn_price")),
        collected=amounts(payload["collected"]),
        avg_collected_price=price(payload.get("avg_collected_price")),
        total_yield=amounts(payload["total_yield"]),
        avg_yield_price=price(payload["avg_yield_price"]),
        date_opened=moment(payload["date_opened"]),
        date_closed=moment(payload.get("date_closed")),
        duration_held_ms=int(payload["duration_held_ms"]),
        yield_per_day=amounts(payload["yield_per_day"]),
        apr=pair(payload["apr"]),
        impermanent_loss_lower=Decimal(payload["impermanent_loss_lower"]),
        impermanent_loss_upper=Decimal(payload["impermanent_loss_upper"]),
        break_even_days_lower=Decimal(payload["break_even_days_lower"]),
        break_even_days_upper=Decimal(payload["break_even_days_upper"]),
        daily_collected=amounts(payload["daily_collected"]),
        daily_apr=pair(payload["daily_apr"]),
    )


def map_row_to_position_snapshot(row: Mapping[str, Any]) -> PositionSnapshot:
    payload = row["payload"]
    if isinstance(payload, (str, bytes)):
        payload = json.loads(payload)
    return map_payload_to_position_snapshot(payload)
