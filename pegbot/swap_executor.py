from __future__ import annotations
from . import config
from .jupiter_client import JupiterRouter, RouteInfo, SwapResult


def explorer_link(txid: str, cluster: str = "mainnet-beta") -> str:
    url = f"{config.EXPLORER_TX_URL}/{txid}"
    if cluster and cluster != "mainnet-beta":
        url += f"?cluster={cluster}"
    return url


def execute_swap(router: JupiterRouter, route: RouteInfo, cluster: str = "mainnet-beta") -> SwapResult:
    """Execute `route` through the router and report the outcome.

    Engine-level failures come back in ``SwapResult.error`` and are only logged.
    """
    exchange = router.exchange(route)
    swap_result = exchange.execute()

    if swap_result.error:
        print(f"[swap] error: {swap_result.error}")
        if swap_result.txid:
            print(f"[swap] {explorer_link(swap_result.txid, cluster)}")
    else:
        print(f"[swap] {explorer_link(swap_result.txid, cluster)}")
        print(f"[swap] inputAddress={swap_result.input_address} outputAddress={swap_result.output_address}")
        print(f"[swap] inputAmount={swap_result.input_amount} outputAmount={swap_result.output_amount}")
    return swap_result
