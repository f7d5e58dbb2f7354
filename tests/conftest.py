"""Shared fakes: an HTTP session for the Jupiter API and an RPC client for Solana."""

import base64
from decimal import Decimal

import pytest
import requests
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

from pegbot.jupiter_client import RouteInfo
from pegbot.strategy import Thresholds
from pegbot.tokens import Token

USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDH_MINT = "USDH1SM1ojwWUga67PGrgFWUHibbjqMvuMaDkRJTgkX"


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """Answers GET/POST by URL suffix from queued responses and records every call."""

    def __init__(self):
        self.responses = {}
        self.calls = []
        self.closed = False

    def queue(self, suffix, payload, status_code=200):
        self.responses.setdefault(suffix, []).append(FakeResponse(payload, status_code))

    def _answer(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        for suffix, queued in self.responses.items():
            if url.endswith(suffix) and queued:
                return queued.pop(0) if len(queued) > 1 else queued[0]
        raise AssertionError(f"unexpected {method} {url}")

    def get(self, url, **kwargs):
        return self._answer("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._answer("POST", url, **kwargs)

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class FakeRpcClient:
    def __init__(self, balances=None):
        # mint -> uiAmountString; a missing mint means no token account
        self.balances = balances or {}
        self.balance_error = None
        self.send_error = None
        self.confirm_err = None
        self.sent = []
        self.signature = str(Signature.default())

    def get_token_accounts_by_owner_json_parsed(self, owner, opts):
        if self.balance_error is not None:
            raise self.balance_error
        ui = self.balances.get(str(opts.mint))
        if ui is None:
            return {"result": {"context": {"slot": 1}, "value": []}}
        account = {
            "pubkey": str(Pubkey.new_unique()),
            "account": {"data": {"parsed": {"info": {"mint": str(opts.mint), "tokenAmount": {
                "amount": "0", "decimals": 6, "uiAmount": float(ui), "uiAmountString": str(ui),
            }}}}},
        }
        return {"result": {"context": {"slot": 1}, "value": [account]}}

    def send_raw_transaction(self, raw):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(raw)
        return {"result": self.signature}

    def confirm_transaction(self, sig, commitment=None):
        return {"result": {"context": {"slot": 2}, "value": [{"slot": 2, "confirmations": None, "err": self.confirm_err}]}}


def make_route(in_amount, out_amount, input_mint=USDC_MINT, output_mint=USDH_MINT, fetched_at=0.0):
    raw = {"inputMint": input_mint, "outputMint": output_mint, "inAmount": str(in_amount), "outAmount": str(out_amount)}
    return RouteInfo(int(in_amount), int(out_amount), input_mint, output_mint, 50, 0.0, fetched_at, raw)


@pytest.fixture
def usdc():
    return Token(101, USDC_MINT, "USDC", "USD Coin", 6)


@pytest.fixture
def usdh():
    return Token(101, USDH_MINT, "USDH", "USDH Hubble Stablecoin", 6)


@pytest.fixture
def keypair():
    return Keypair()


@pytest.fixture
def thresholds():
    return Thresholds(
        sell_ratio_above=Decimal("0.983"),
        sell_min_balance=Decimal("27000"),
        sell_amount=Decimal("27000"),
        buy_ratio_below=Decimal("0.970"),
        buy_min_balance=Decimal("26000"),
        buy_amount=Decimal("26000"),
        buy_confirm_ratio_above=Decimal("1.030"),
        confirm_max_age_sec=4.0,
    )


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def rpc():
    return FakeRpcClient()


@pytest.fixture
def signed_swap_tx_b64(keypair):
    ix = transfer(TransferParams(from_pubkey=keypair.pubkey(), to_pubkey=Pubkey.new_unique(), lamports=1))
    msg = Message.new_with_blockhash([ix], keypair.pubkey(), Hash.default())
    return base64.b64encode(bytes(VersionedTransaction(msg, [keypair]))).decode()
