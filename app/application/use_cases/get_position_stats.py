from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import datetime, timezone
from fractions import Fraction
from time import perf_counter

from app.application.dto.position_stats import (
    GetPositionStatsInput,
    PositionStatsFailure,
    PositionStatsOutput,
)
from app.application.ports.chain_ports_port import ChainPortsProviderPort
from app.application.services.position_event_aggregator import (
    PoolSqrtPriceMemo,
    PositionEventAggregator,
)
from app.domain.entities.liquidity_event import EventAggregate
from app.domain.entities.position import CurrencyAmount, PositionSnapshot, Price, Token
from app.domain.exceptions import PoolNotFoundError, PositionDataError, PositionStatsError
from app.domain.services.liquidity import current_amounts
from app.domain.services.position_metrics import (
    SECONDS_PER_DAY,
    annualized_rate,
    blend_yield_price,
    break_even_days,
    duration_held_ms,
    impermanent_loss,
    to_quote_amount,
    yield_per_day,
)
from app.domain.services.univ3_math import sqrt_price_x96_to_price, tick_to_price


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _from_unix(timestamp: int | None) -> datetime | None:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def _price_from_avg_sqrt(avg_sqrt_price_x96: Fraction | None, token0: Token, token1: Token) -> Price | None:
    if avg_sqrt_price_x96 is None:
        return None
    # Half-up rounding to an integer sqrt price.
    sqrt_price_x96 = math.floor(avg_sqrt_price_x96 + Fraction(1, 2))
    if sqrt_price_x96 <= 0:
        return None
    return sqrt_price_x96_to_price(sqrt_price_x96, token0, token1)


def _amounts(token0: Token, token1: Token, amount0: int, amount1: int) -> tuple[CurrencyAmount, CurrencyAmount]:
    return CurrencyAmount.from_raw(token0, amount0), CurrencyAmount.from_raw(token1, amount1)


def _aggregate_amounts(
    token0: Token,
    token1: Token,
    aggregate: EventAggregate,
) -> tuple[CurrencyAmount, CurrencyAmount]:
    return _amounts(token0, token1, aggregate.amount0, aggregate.amount1)


class GetPositionStatsUseCase:
    def __init__(
        self,
        *,
        chain_ports_provider: ChainPortsProviderPort,
        now_provider: Callable[[], datetime] = _utcnow,
    ):
        self._chain_ports_provider = chain_ports_provider
        self._now_provider = now_provider

    def execute(self, command: GetPositionStatsInput) -> PositionStatsOutput:
        logger.info(
            "get_position_stats: start chain=%s position_id=%s",
            command.chain,
            command.position_id,
        )
        start = perf_counter()
        try:
            snapshot = self._build_snapshot(command)
        except PositionStatsError as exc:
            logger.warning(
                "get_position_stats: failed chain=%s position_id=%s kind=%s error=%s",
                command.chain,
                command.position_id,
                exc.kind.value,
                exc,
            )
            return PositionStatsOutput(
                error=PositionStatsFailure.from_error(
                    exc,
                    chain=command.chain,
                    position_id=command.position_id,
                )
            )

        logger.info(
            "get_position_stats: done chain=%s position_id=%s elapsed_ms=%.2f",
            command.chain,
            command.position_id,
            (perf_counter() - start) * 1000,
        )
        return PositionStatsOutput(snapshot=snapshot)

    def _build_snapshot(self, command: GetPositionStatsInput) -> PositionSnapshot:
        chain = command.chain
        position_id = command.position_id
        ports = self._chain_ports_provider.get_ports(chain=chain)
        position_port = ports.position_port
        pool_port = ports.pool_port

        owner = position_port.get_owner(position_id=position_id)
        position = position_port.get_position(position_id=position_id)
        if position.tick_lower >= position.tick_upper:
            raise PositionDataError(
                f"Position {position_id} on {chain} has an invalid tick range "
                f"[{position.tick_lower}, {position.tick_upper}].",
                chain=chain,
                position_id=position_id,
            )

        token0 = ports.token_port.get_token(address=position.token0)
        token1 = ports.token_port.get_token(address=position.token1)

        lower_tick_price = tick_to_price(token0, token1, position.tick_lower)
        upper_tick_price = tick_to_price(token0, token1, position.tick_upper)

        pool_address = pool_port.get_pool_address(
            token0=position.token0,
            token1=position.token1,
            fee=position.fee,
        )
        if not pool_address or int(pool_address, 16) == 0:
            raise PoolNotFoundError(
                f"No pool for {token0.symbol}/{token1.symbol} fee={position.fee} on {chain}.",
                chain=chain,
                position_id=position_id,
            )

        sqrt_price_x96 = pool_port.get_sqrt_price_x96(pool_address=pool_address)
        current_price = sqrt_price_x96_to_price(sqrt_price_x96, token0, token1)
        current = current_amounts(
            liquidity=position.liquidity,
            sqrt_price_x96=sqrt_price_x96,
            tick_lower=position.tick_lower,
            tick_upper=position.tick_upper,
            token0=token0,
            token1=token1,
        )

        uncollected0, uncollected1 = position_port.get_uncollected_fees(
            position_id=position_id,
            owner=owner,
        )
        uncollected = _amounts(token0, token1, uncollected0, uncollected1)

        aggregator = PositionEventAggregator(position_port=position_port, block_port=ports.block_port)
        history = aggregator.fetch_history(position_id=position_id)
        sqrt_price_at_block = PoolSqrtPriceMemo(pool_port=pool_port, pool_address=pool_address)

        deposits = aggregator.deposits(events=history.increases, sqrt_price_at_block=sqrt_price_at_block)
        avg_deposit_price = _price_from_avg_sqrt(deposits.avg_sqrt_price_x96, token0, token1)
        if avg_deposit_price is None or deposits.first_timestamp is None:
            raise PositionDataError(
                f"No IncreaseLiquidity events found for position {position_id} on {chain}. "
                f"Logs are scanned from POSITION_MANAGER_START_BLOCK_{chain.upper()}; "
                "a start block after the mint hides the deposit history.",
                chain=chain,
                position_id=position_id,
            )

        withdrawals = aggregator.withdrawals(
            events=history.decreases,
            sqrt_price_at_block=sqrt_price_at_block,
        )
        collects = aggregator.collects(
            collects=history.collects,
            decreases=history.decreases,
            sqrt_price_at_block=sqrt_price_at_block,
            tick_lower=position.tick_lower,
            tick_upper=position.tick_upper,
        )
        logger.info(
            "get_position_stats: aggregated chain=%s position_id=%s pool=%s slot0_reads=%s",
            chain,
            position_id,
            pool_address,
            sqrt_price_at_block.reads,
        )

        deposited = _aggregate_amounts(token0, token1, deposits)
        withdrawn = _aggregate_amounts(token0, token1, withdrawals)
        collected = _aggregate_amounts(token0, token1, collects)
        avg_withdrawn_price = _price_from_avg_sqrt(withdrawals.avg_sqrt_price_x96, token0, token1)
        avg_collected_price = _price_from_avg_sqrt(collects.avg_sqrt_price_x96, token0, token1)

        total_yield = (collected[0].add(uncollected[0]), collected[1].add(uncollected[1]))
        avg_yield_price = blend_yield_price(
            collected=collected,
            uncollected=uncollected,
            avg_collected_price=avg_collected_price,
            current_price=current_price,
        )

        now = self._now_provider()
        date_opened = _from_unix(deposits.first_timestamp)
        date_closed = _from_unix(withdrawals.last_timestamp)
        duration_ms = duration_held_ms(date_opened=date_opened, date_closed=date_closed, now=now)

        per_day = (
            yield_per_day(total_yield=total_yield[0], duration_ms=duration_ms),
            yield_per_day(total_yield=total_yield[1], duration_ms=duration_ms),
        )
        apr = (
            annualized_rate(amount_per_day=per_day[0], deposited=deposited[0]),
            annualized_rate(amount_per_day=per_day[1], deposited=deposited[1]),
        )

        il_lower = impermanent_loss(deposit_price=avg_deposit_price, boundary_price=lower_tick_price)
        il_upper = impermanent_loss(deposit_price=avg_deposit_price, boundary_price=upper_tick_price)
        deposited_quote = to_quote_amount(deposited, avg_deposit_price).to_decimal()
        per_day_quote = to_quote_amount(per_day, avg_yield_price).to_decimal()

        daily0, daily1 = aggregator.daily_collected(
            collects=history.collects,
            decreases=history.decreases,
            since_timestamp=int(now.timestamp()) - SECONDS_PER_DAY,
        )
        daily_collected = _amounts(token0, token1, daily0, daily1)

        return PositionSnapshot(
            position_id=position_id,
            chain=chain,
            lower_tick_price=lower_tick_price,
            upper_tick_price=upper_tick_price,
            current_price=current_price,
            uncollected=uncollected,
            current=current,
            deposited=deposited,
            avg_deposit_price=avg_deposit_price,
            withdrawn=withdrawn,
            avg_withdrawn_price=avg_withdrawn_price,
            collected=collected,
            avg_collected_price=avg_collected_price,
            total_yield=total_yield,
            avg_yield_price=avg_yield_price,
            date_opened=date_opened,
            date_closed=date_closed,
            duration_held_ms=duration_ms,
            yield_per_day=per_day,
            apr=apr,
            impermanent_loss_lower=il_lower,
            impermanent_loss_upper=il_upper,
            break_even_days_lower=break_even_days(
                impermanent_loss=il_lower,
                yield_per_day_quote=per_day_quote,
                deposited_quote=deposited_quote,
            ),
            break_even_days_upper=break_even_days(
                impermanent_loss=il_upper,
                yield_per_day_quote=per_day_quote,
                deposited_quote=deposited_quote,
            ),
            daily_collected=daily_collected,
            daily_apr=(
                annualized_rate(amount_per_day=daily_collected[0], deposited=deposited[0]),
                annualized_rate(amount_per_day=daily_collected[1], deposited=deposited[1]),
            ),
        )
