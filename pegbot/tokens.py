from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence
import requests

from . import config


@dataclass(frozen=True)
class Token:
    chain_id: int
    address: str
    symbol: str
    name: str
    decimals: int
    logo_uri: str | None = None
    tags: tuple = field(default_factory=tuple)

    @classmethod
    def from_json(cls, row: dict) -> "Token":
        return cls(
            chain_id=int(row.get("chainId", 0)),
            address=row["address"],
            symbol=row.get("symbol", ""),
            name=row.get("name", ""),
            decimals=int(row["decimals"]),
            logo_uri=row.get("logoURI"),
            tags=tuple(row.get("tags") or ()),
        )


def fetch_token_list(url: str | None = None, session: Optional[requests.Session] = None) -> List[Token]:
    """Download the Jupiter token list for the configured cluster."""
    if session is None:
        with requests.Session() as http:
            return fetch_token_list(url, session=http)
    r = session.get(url or config.TOKEN_LIST_URL, timeout=config.HTTP_TIMEOUT_SEC)
    r.raise_for_status()
    rows = r.json()
    if not isinstance(rows, list):
        raise ValueError(f"Unexpected token list payload: {type(rows).__name__}")
    tokens = []
    for row in rows:
        # entries without an address or decimals cannot be traded
        if not isinstance(row, dict) or "address" not in row or "decimals" not in row:
            continue
        tokens.append(Token.from_json(row))
    return tokens


def find_token(tokens: Sequence[Token], address: str) -> Token | None:
    for t in tokens:
        if t.address == address:
            return t
    return None


def possible_pairs_token_info(
    tokens: Sequence[Token],
    route_map: Mapping[str, Sequence[str]],
    input_token: Token | None,
) -> Dict[str, Token | None]:
    """Map every mint reachable from `input_token` to its Token (None when not listed)."""
    if input_token is None:
        return {}
    by_address = {t.address: t for t in tokens}
    return {address: by_address.get(address) for address in route_map.get(input_token.address, [])}
