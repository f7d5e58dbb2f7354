# Threshold bands for the two-token peg trade.
#
# Two one-sided bands on ratio = out/in of the primary direction (input -> output):
#   ratio >  sell_ratio_above and input balance  >= sell_min_balance -> sell input
#   ratio <  buy_ratio_below  and output balance >= buy_min_balance  -> buy input back
# A triggered plan is then re-quoted in its own direction and confirmed before
# anything is executed (confirm-then-commit). Nothing locks the price between the
# confirmation quote and settlement; `is_stale` bounds how old that quote may be.
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from . import config


class Direction(str, Enum):
    SELL_INPUT = "sell_input"  # input -> output
    BUY_INPUT = "buy_input"    # output -> input


@dataclass(frozen=True)
class Thresholds:
    sell_ratio_above: Decimal
    sell_min_balance: Decimal
    sell_amount: Decimal
    buy_ratio_below: Decimal
    buy_min_balance: Decimal
    buy_amount: Decimal
    buy_confirm_ratio_above: Decimal
    confirm_max_age_sec: float

    @classmethod
    def from_config(cls) -> "Thresholds":
        return cls(
            sell_ratio_above=config.SELL_RATIO_ABOVE,
            sell_min_balance=config.SELL_MIN_BALANCE,
            sell_amount=config.SELL_AMOUNT,
            buy_ratio_below=config.BUY_RATIO_BELOW,
            buy_min_balance=config.BUY_MIN_BALANCE,
            buy_amount=config.BUY_AMOUNT,
            buy_confirm_ratio_above=config.BUY_CONFIRM_RATIO_ABOVE,
            confirm_max_age_sec=config.CONFIRM_MAX_AGE_SEC,
        )


@dataclass(frozen=True)
class Balances:
    input_balance: Decimal
    output_balance: Decimal


@dataclass(frozen=True)
class TradePlan:
    direction: Direction
    amount: Decimal  # UI units of the token being sold
    trigger_ratio: Decimal


def evaluate(ratio: Decimal, balances: Balances, thresholds: Thresholds) -> TradePlan | None:
    ratio = Decimal(str(ratio))
    if ratio > thresholds.sell_ratio_above and balances.input_balance >= thresholds.sell_min_balance:
        return TradePlan(Direction.SELL_INPUT, thresholds.sell_amount, ratio)
    if ratio < thresholds.buy_ratio_below and balances.output_balance >= thresholds.buy_min_balance:
        return TradePlan(Direction.BUY_INPUT, thresholds.buy_amount, ratio)
    return None


def confirm(plan: TradePlan, confirm_ratio: Decimal, thresholds: Thresholds) -> bool:
    """Re-check a plan against the ratio of its confirmation quote.

    The sell side re-uses the trigger band. The buy side is quoted output -> input,
    so its ratio is the inverse of the trigger ratio and has its own threshold.
    """
    confirm_ratio = Decimal(str(confirm_ratio))
    if plan.direction is Direction.SELL_INPUT:
        return confirm_ratio > thresholds.sell_ratio_above
    return confirm_ratio > thresholds.buy_confirm_ratio_above


def is_stale(fetched_at: float, max_age_sec: float, now: float) -> bool:
    return (now - fetched_at) > max_age_sec
