from __future__ import annotations
import signal
import threading
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable

from solana.rpc.api import Client
from solders.keypair import Keypair

from . import config, solana_client
from .jupiter_client import JupiterRouter, SwapResult
from .quotes import get_routes, route_ratio
from .strategy import Balances, Direction, Thresholds, TradePlan, confirm, evaluate, is_stale
from .swap_executor import execute_swap
from .tokens import Token, fetch_token_list, find_token, possible_pairs_token_info

_stop_event = None  # set in run()


# Lightweight structured logging for trade lifecycle events
def _log(event: str, **fields):
    parts = [f"{event}"]
    for k, v in fields.items():
        if v is not None:
            parts.append(f"{k}={v}")
    print(" ".join(parts))


@dataclass
class BotContext:
    """Everything the loop needs, built once at startup and closed on shutdown."""
    client: Client
    keypair: Keypair
    router: JupiterRouter
    input_mint: str
    output_mint: str
    input_token: Token | None
    output_token: Token | None
    thresholds: Thresholds
    cluster: str = "mainnet-beta"
    slippage_pct: float = 0.5
    normalize_ratio: bool = True
    dry_run: bool = False
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    @property
    def owner(self):
        return self.keypair.pubkey()

    def close(self):
        self.router.close()


def build_context() -> BotContext:
    print("Connect to solana")
    client = solana_client.connect(config.RPC_URL)

    print("Fetch user keypair")
    keypair = solana_client.load_keypair(config.USER_KEYPAIR_PATH)

    print("Fetch token list")
    tokens = fetch_token_list(config.TOKEN_LIST_URL)
    print(f"Number of supported tokens: {len(tokens)}")

    print("Load Jupiter")
    router = JupiterRouter.load(client, config.CLUSTER, keypair, config.CACHE_DURATION_MS)

    input_token = find_token(tokens, config.INPUT_MINT_ADDRESS)
    output_token = find_token(tokens, config.OUTPUT_MINT_ADDRESS)
    if input_token is None or output_token is None:
        print(f"[!] Mint not in token list (input={input_token is not None} output={output_token is not None}); quotes will be skipped")

    if config.SHOW_POSSIBLE_PAIRS and input_token is not None:
        pairs = possible_pairs_token_info(tokens, router.get_route_map(), input_token)
        listed = [t.symbol for t in pairs.values() if t is not None]
        print(f"Possible pairs for {input_token.symbol}: {len(pairs)} ({', '.join(listed[:10])}{' …' if len(listed) > 10 else ''})")

    return BotContext(
        client=client,
        keypair=keypair,
        router=router,
        input_mint=config.INPUT_MINT_ADDRESS,
        output_mint=config.OUTPUT_MINT_ADDRESS,
        input_token=input_token,
        output_token=output_token,
        thresholds=Thresholds.from_config(),
        cluster=config.CLUSTER,
        slippage_pct=config.SLIPPAGE_PCT,
        normalize_ratio=config.RATIO_NORMALIZE_DECIMALS,
        dry_run=config.DRY_RUN,
    )


def _symbol(token: Token | None) -> str:
    return token.symbol if token is not None else "?"


def read_balances(ctx: BotContext) -> Balances:
    print("Compute input and output token balances")
    input_balance = solana_client.get_token_ui_balance(ctx.client, ctx.owner, ctx.input_mint)
    output_balance = solana_client.get_token_ui_balance(ctx.client, ctx.owner, ctx.output_mint)
    print(f"{_symbol(ctx.input_token)} Balance: {input_balance}--{_symbol(ctx.output_token)} Balance: {output_balance}")
    return Balances(input_balance, output_balance)


def confirm_and_execute(ctx: BotContext, plan: TradePlan) -> SwapResult | None:
    """Second phase: re-quote the plan's own direction, confirm, then commit."""
    if plan.direction is Direction.SELL_INPUT:
        sell_token, buy_token = ctx.input_token, ctx.output_token
    else:
        sell_token, buy_token = ctx.output_token, ctx.input_token

    routes = get_routes(ctx.router, sell_token, buy_token, plan.amount, ctx.slippage_pct, force_fetch=True)
    if routes is None:
        return None
    route = routes.routes_infos[0]
    ratio = route_ratio(route, sell_token, buy_token, ctx.normalize_ratio)
    print(f"{sell_token.symbol} to {buy_token.symbol} ratio: {ratio}")

    if not confirm(plan, ratio, ctx.thresholds):
        _log("TRADE_NOT_CONFIRMED", direction=plan.direction.value, trigger_ratio=plan.trigger_ratio, confirm_ratio=ratio)
        return None
    now = ctx.clock()
    age = now - route.fetched_at
    if is_stale(route.fetched_at, ctx.thresholds.confirm_max_age_sec, now):
        _log("CONFIRMATION_STALE", direction=plan.direction.value, age_sec=f"{age:.2f}", max_age_sec=ctx.thresholds.confirm_max_age_sec)
        return None

    print(f"Executing {sell_token.symbol} to {buy_token.symbol}--{sell_token.symbol} amount: {route.in_amount}--{buy_token.symbol} amount: {route.out_amount}")
    if ctx.dry_run:
        print("[dry-run] swap not submitted")
        return None
    return execute_swap(ctx.router, route, ctx.cluster)


def run_iteration(ctx: BotContext) -> SwapResult | None:
    balances = read_balances(ctx)

    print(f"Get routes for input: {_symbol(ctx.input_token)} and output: {_symbol(ctx.output_token)} token pairs")
    routes = get_routes(ctx.router, ctx.input_token, ctx.output_token, ctx.thresholds.sell_amount, ctx.slippage_pct)
    if routes is None:
        return None

    ratio = route_ratio(routes.routes_infos[0], ctx.input_token, ctx.output_token, ctx.normalize_ratio)
    print(f"{ctx.input_token.symbol} to {ctx.output_token.symbol} ratio: {ratio}")

    plan = evaluate(Decimal(ratio), balances, ctx.thresholds)
    if plan is None:
        return None
    _log("TRADE_TRIGGERED", direction=plan.direction.value, ratio=ratio, amount=plan.amount)
    return confirm_and_execute(ctx, plan)


def poll_forever(
    ctx: BotContext,
    stop_event: threading.Event,
    interval_sec: float | None = None,
    stop_on_error: bool | None = None,
    max_iterations: int | None = None,
) -> int:
    """Poll until stopped. Returns 0 on a normal stop, 1 when a fault ended the loop.

    With `stop_on_error` the first fault ends polling; otherwise the fault is
    logged and the next iteration runs after the usual interval.
    """
    if interval_sec is None:
        interval_sec = config.POLL_INTERVAL_SEC
    if stop_on_error is None:
        stop_on_error = config.STOP_ON_ERROR

    iteration = 0
    while not stop_event.is_set():
        iteration += 1
        try:
            run_iteration(ctx)
        except Exception as e:
            print(f"[loop] iteration {iteration} error: {type(e).__name__}: {e}")
            if stop_on_error:
                return 1
        if max_iterations is not None and iteration >= max_iterations:
            break
        if stop_event.wait(interval_sec):
            break
    return 0


def run() -> int:
    missing = config.missing_required_env()
    if missing:
        print(f"[!] Required environment variable(s) not set: {', '.join(missing)}. Aborting.")
        return 2

    print("\n")
    print("🌐 Starting Jupiter peg bot")
    print(f"   Cluster: {config.CLUSTER}")
    print(f"   Solana RPC: {config.RPC_URL}")
    print(f"   Pair: {config.INPUT_MINT_ADDRESS} -> {config.OUTPUT_MINT_ADDRESS}")
    print(f"   Poll interval: {config.POLL_INTERVAL_SEC}s  stop_on_error={config.STOP_ON_ERROR}  dry_run={config.DRY_RUN}\n")

    # Setup graceful shutdown via Ctrl+C (SIGINT) or SIGTERM
    global _stop_event
    _stop_event = threading.Event()

    def _request_stop(signum, frame):
        try:
            sig_name = signal.Signals(signum).name
        except ValueError:
            sig_name = str(signum)
        print(f"Received {sig_name}, stopping…")
        _stop_event.set()

    for _sig in ("SIGINT", "SIGTERM"):
        if hasattr(signal, _sig):
            signal.signal(getattr(signal, _sig), _request_stop)

    try:
        ctx = build_context()
    except Exception as e:
        print({"error": e})
        return 1

    try:
        return poll_forever(ctx, _stop_event)
    finally:
        ctx.close()
