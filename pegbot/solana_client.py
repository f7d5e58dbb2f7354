from __future__ import annotations
import json
import threading, queue
from decimal import Decimal
from typing import Optional
from solana.rpc.api import Client
from solana.rpc.types import TokenAccountOpts
from solders.keypair import Keypair
from solders.pubkey import Pubkey as PublicKey
from solders.signature import Signature

from . import config

KEYPAIR_LENGTH = 64


def connect(rpc_url: str | None = None) -> Client:
    return Client(rpc_url or config.RPC_URL)


def _rpc_to_json(resp):
    if isinstance(resp, dict):
        return resp
    tj = getattr(resp, "to_json", None)
    if callable(tj):
        return json.loads(tj())
    return None


def _rpc_get_result(resp):
    js = _rpc_to_json(resp)
    if isinstance(js, dict):
        if "result" in js:
            return js["result"]
        return js
    # Fallback to .value on typed responses
    val = getattr(resp, "value", None)
    return val if val is not None else resp


def _rpc_get_value(resp):
    res = _rpc_get_result(resp)
    if isinstance(res, dict) and "value" in res:
        return res["value"]
    return res


def _rpc_call(method, *args, timeout: Optional[float] = None, **kwargs):
    """Run an RPC client method in a thread with timeout to avoid hangs."""
    if timeout is None:
        timeout = config.SOLANA_RPC_TIMEOUT_SEC
    q: "queue.Queue[tuple[bool, object]]" = queue.Queue(maxsize=1)
    def _runner():
        try:
            res = method(*args, **kwargs)
            q.put((True, res))
        except Exception as e:  # pragma: no cover
            q.put((False, e))
    th = threading.Thread(target=_runner, daemon=True)
    th.start()
    try:
        ok, val = q.get(timeout=timeout)
    except queue.Empty:
        raise TimeoutError(f"RPC call timeout after {timeout}s: {getattr(method, '__name__', method)}")
    if ok:
        return val
    raise val  # re-raise exception from thread


def _read_secret_bytes(path: str) -> bytes:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("Unsupported keypair format; expected JSON array of ints")
    if len(data) != KEYPAIR_LENGTH:
        raise ValueError(f"Keypair file must hold {KEYPAIR_LENGTH} bytes, got {len(data)}")
    return bytes(data)


def load_keypair(path: str | None = None) -> Keypair:
    """Load the signing keypair from a JSON byte-array file (solana-keygen format)."""
    return Keypair.from_bytes(_read_secret_bytes(path or config.USER_KEYPAIR_PATH))


def get_token_ui_balance(client: Client, owner: PublicKey, mint: PublicKey | str) -> Decimal:
    """Return the uiAmount of `mint` held by `owner`, or 0 when no token account exists.

    Only the first token account returned by the node is read. RPC errors propagate.
    """
    if isinstance(mint, str):
        mint = PublicKey.from_string(mint)
    resp = _rpc_call(client.get_token_accounts_by_owner_json_parsed, owner, TokenAccountOpts(mint=mint))
    accounts = _rpc_get_value(resp) or []
    if not accounts:
        return Decimal(0)
    info = accounts[0]["account"]["data"]["parsed"]["info"]
    token_amount = info.get("tokenAmount") or {}
    ui = token_amount.get("uiAmountString")
    if ui is None:
        ui = token_amount.get("uiAmount")
    return Decimal(str(ui)) if ui is not None else Decimal(0)


def send_signed_transaction(client: Client, raw_tx: bytes) -> str:
    send_resp = _rpc_call(client.send_raw_transaction, raw_tx)
    sig = _rpc_get_result(send_resp)
    if not isinstance(sig, str):
        raise RuntimeError(f"Failed to send tx, unexpected response: {send_resp}")
    return sig


def confirm_signature(client: Client, sig: str) -> str | None:
    """Wait for `confirmed` commitment. Returns the on-chain error as a string, or None."""
    resp = _rpc_call(client.confirm_transaction, Signature.from_string(sig), commitment="confirmed",
                     timeout=config.SOLANA_CONFIRM_TIMEOUT_SEC)
    statuses = _rpc_get_value(resp) or []
    status = statuses[0] if statuses else None
    if isinstance(status, dict) and status.get("err") is not None:
        return str(status["err"])
    return None
