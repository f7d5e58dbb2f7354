"""Thin adapter over the Jupiter swap API.

Route discovery, pricing and transaction construction happen on Jupiter's side;
this module only requests quotes, asks for a swap transaction for a chosen
quote, signs it with the local keypair and submits it through the Solana RPC.

The call shape mirrors the Jupiter SDK: ``JupiterRouter.load(...)``,
``compute_routes(...)`` and ``exchange(route).execute()``.
"""
from __future__ import annotations
import base64
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
import requests
from solana.rpc.api import Client
from solders.keypair import Keypair
from solders.transaction import VersionedTransaction

from . import config, solana_client


@dataclass
class RouteInfo:
    in_amount: int
    out_amount: int
    input_mint: str
    output_mint: str
    slippage_bps: int
    price_impact_pct: float
    fetched_at: float
    raw: Dict[str, Any] = field(repr=False, default_factory=dict)

    @classmethod
    def from_quote(cls, q: dict, fetched_at: float) -> "RouteInfo":
        return cls(
            in_amount=int(q["inAmount"]),
            out_amount=int(q["outAmount"]),
            input_mint=str(q.get("inputMint", "")),
            output_mint=str(q.get("outputMint", "")),
            slippage_bps=int(q.get("slippageBps") or 0),
            price_impact_pct=float(q.get("priceImpactPct") or 0),
            fetched_at=fetched_at,
            raw=q,
        )


@dataclass
class RoutesResult:
    routes_infos: List[RouteInfo]
    cached: bool = False


@dataclass
class SwapResult:
    input_address: str
    output_address: str
    input_amount: int
    output_amount: int
    txid: str | None = None
    error: str | None = None


def slippage_pct_to_bps(slippage_pct: float) -> int:
    return int(round(slippage_pct * 100))


class Exchange:
    def __init__(self, router: "JupiterRouter", route: RouteInfo):
        self.router = router
        self.route = route

    def execute(self) -> SwapResult:
        """Fetch, sign and send the swap transaction for this route.

        HTTP failures talking to Jupiter raise. Anything that goes wrong once a
        transaction exists (signing, send, confirmation) is reported through
        ``SwapResult.error`` with ``txid`` set when a signature was obtained.
        """
        route = self.route
        result = SwapResult(
            input_address=route.input_mint,
            output_address=route.output_mint,
            input_amount=route.in_amount,
            output_amount=route.out_amount,
        )
        swap_tx_b64 = self.router.fetch_swap_transaction(route)
        if not swap_tx_b64:
            result.error = "Jupiter: missing swapTransaction"
            return result
        try:
            unsigned = VersionedTransaction.from_bytes(base64.b64decode(swap_tx_b64))
            signed = VersionedTransaction(unsigned.message, [self.router.user])
            result.txid = solana_client.send_signed_transaction(self.router.client, bytes(signed))
            result.error = solana_client.confirm_signature(self.router.client, result.txid)
        except Exception as e:
            result.error = f"{type(e).__name__}: {e}"
        return result


class JupiterRouter:
    def __init__(
        self,
        client: Client,
        user: Keypair,
        cluster: str = "mainnet-beta",
        route_cache_duration_ms: int = 0,
        base_url: str | None = None,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.user = user
        self.cluster = cluster
        self.route_cache_duration_ms = route_cache_duration_ms
        self.base_url = (base_url or config.JUPITER_API_URL).rstrip("/")
        self.session = session or requests.Session()
        self._clock = clock
        self._route_cache: Dict[Tuple[str, str, int, int], RoutesResult] = {}

    @classmethod
    def load(cls, client: Client, cluster: str, user: Keypair, route_cache_duration_ms: int, **kwargs) -> "JupiterRouter":
        return cls(client, user, cluster=cluster, route_cache_duration_ms=route_cache_duration_ms, **kwargs)

    # ---- Quotes ----
    def compute_routes(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_pct: float,
        force_fetch: bool = False,
    ) -> RoutesResult:
        """Return candidate routes best-first for `amount` raw units of `input_mint`.

        Results are reused for `route_cache_duration_ms` unless `force_fetch` is set.
        """
        slippage_bps = slippage_pct_to_bps(slippage_pct)
        key = (str(input_mint), str(output_mint), int(amount), slippage_bps)
        now = self._clock()
        if not force_fetch and key in self._route_cache:
            hit = self._route_cache[key]
            fetched_at = hit.routes_infos[0].fetched_at if hit.routes_infos else now
            if (now - fetched_at) * 1000 < self.route_cache_duration_ms:
                return RoutesResult(hit.routes_infos, cached=True)

        params = {
            "inputMint": key[0],
            "outputMint": key[1],
            "amount": str(key[2]),
            "slippageBps": str(slippage_bps),
            "onlyDirectRoutes": "false",
        }
        r = self.session.get(f"{self.base_url}/quote", params=params, timeout=config.HTTP_TIMEOUT_SEC)
        r.raise_for_status()
        body = r.json()
        # v6 answers with a single best quote, older APIs with {"data": [routes...]}
        if isinstance(body, dict) and isinstance(body.get("data"), list):
            quotes = body["data"]
        elif isinstance(body, dict) and "outAmount" in body:
            quotes = [body]
        else:
            quotes = []
        routes = [RouteInfo.from_quote(q, now) for q in quotes]
        result = RoutesResult(routes)
        self._route_cache[key] = result
        return result

    def get_route_map(self) -> Dict[str, List[str]]:
        """Mint -> list of mints it can be swapped into, decoded from the indexed route map."""
        r = self.session.get(f"{self.base_url}/indexed-route-map", timeout=config.HTTP_TIMEOUT_SEC)
        r.raise_for_status()
        j = r.json()
        mint_keys = j.get("mintKeys") or []
        indexed = j.get("indexedRouteMap") or {}
        return {mint_keys[int(k)]: [mint_keys[i] for i in v] for k, v in indexed.items()}

    # ---- Swaps ----
    def fetch_swap_transaction(self, route: RouteInfo) -> str | None:
        payload = {
            "quoteResponse": route.raw,
            "userPublicKey": str(self.user.pubkey()),
            "wrapAndUnwrapSol": True,
            "prioritizationFeeLamports": 0,
            "dynamicComputeUnitLimit": True,
        }
        s = self.session.post(f"{self.base_url}/swap", json=payload, timeout=config.HTTP_TIMEOUT_SEC)
        s.raise_for_status()
        return s.json().get("swapTransaction")

    def exchange(self, route: RouteInfo) -> Exchange:
        return Exchange(self, route)

    def close(self):
        self._route_cache.clear()
        self.session.close()
