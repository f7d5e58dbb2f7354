from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP

from .jupiter_client import JupiterRouter, RouteInfo, RoutesResult
from .tokens import Token


def to_smallest_units(amount, decimals: int) -> int:
    """UI amount -> integer base units, rounding half up (1000 @ 6 decimals -> 1_000_000_000)."""
    scaled = Decimal(str(amount)) * (Decimal(10) ** decimals)
    return int(scaled.to_integral_value(rounding=ROUND_HALF_UP))


def get_routes(
    router: JupiterRouter,
    input_token: Token | None,
    output_token: Token | None,
    input_amount,
    slippage: float,
    force_fetch: bool = False,
) -> RoutesResult | None:
    if input_token is None or output_token is None:
        return None

    print("[quote] Getting routes")
    amount_units = to_smallest_units(input_amount, input_token.decimals)
    routes = router.compute_routes(
        input_token.address,
        output_token.address,
        amount_units,
        slippage,
        force_fetch=force_fetch,
    )
    if not routes or not routes.routes_infos:
        print(f"[quote] No route for {input_token.symbol}->{output_token.symbol}")
        return None
    print(f"[quote] Possible number of routes: {len(routes.routes_infos)}")
    print(f"[quote] Best quote: {routes.routes_infos[0].out_amount}")
    return routes


def route_ratio(route: RouteInfo, input_token: Token, output_token: Token, normalize: bool = True) -> Decimal:
    """out/in of a route. With `normalize`, both sides are first scaled to UI units."""
    if route.in_amount <= 0:
        raise ValueError("route has a non-positive input amount")
    out_amt = Decimal(route.out_amount)
    in_amt = Decimal(route.in_amount)
    if normalize:
        out_amt /= Decimal(10) ** output_token.decimals
        in_amt /= Decimal(10) ** input_token.decimals
    return out_amt / in_amt
