"""Pytest fixtures: a scripted execution node behind httpx.MockTransport."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from blockproducer.auth.credentials import JwtCredential, authorize_header
from blockproducer.engine.client import EngineClient, PublicClient
from blockproducer.engine.rpc import JsonRpcTransport
from blockproducer.utils.exceptions import AuthError

ENGINE_URL = "http://engine.test:8551"
PUBLIC_URL = "http://public.test:8545"
PARENT_HASH = "0x" + "11" * 32
NEW_BLOCK_HASH = "0x" + "22" * 32
RECIPIENT = "0x" + "ab" * 20
GWEI = 10**9


class FakeEngineNode:
    """
    Minimal execution node.

    Records every JSON-RPC body it receives, checks bearer tokens on
    ``engine_*`` methods against the shared secret, and echoes requested
    withdrawals back in the built payload. Attributes can be tweaked per test
    to script failures.
    """

    def __init__(self, secret: bytes):
        self.secret = secret
        self.requests: list[dict[str, Any]] = []
        self.auth_headers: list[str | None] = []
        self.parent_timestamp = 100
        self.payload_id: str | None = "0x0000000000000001"
        self.status = "VALID"
        self.head_status = "VALID"
        self.omit_withdrawals = False
        self.returned_withdrawals: list[dict[str, Any]] | None = None
        self.payload_extra: dict[str, Any] = {}
        self.envelope_extra: dict[str, Any] = {}
        self.errors: dict[str, dict[str, Any]] = {}
        self.balances: dict[str, int] = {}
        self.head: str | None = None
        self._attributes: dict[str, Any] | None = None

    @property
    def methods(self) -> list[str]:
        return [r["method"] for r in self.requests]

    def calls(self, method: str) -> list[dict[str, Any]]:
        return [r for r in self.requests if r["method"] == method]

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        header = request.headers.get("Authorization")
        self.requests.append(body)
        self.auth_headers.append(header)
        method = body["method"]

        if method.startswith("engine_"):
            try:
                authorize_header(header, self.secret)
            except AuthError as e:
                return httpx.Response(401, text=e.code)

        if method in self.errors:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": self.errors[method]})

        handlers = {
            "eth_getBlockByNumber": self._block,
            "eth_getBalance": self._balance,
            "engine_forkchoiceUpdatedV3": self._forkchoice,
            "engine_getPayloadV3": self._get_payload,
            "engine_newPayloadV3": self._new_payload,
            "engine_newPayloadV4": self._new_payload,
        }
        if method not in handlers:
            error = {"code": -32601, "message": f"the method {method} does not exist"}
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": error})
        result = handlers[method](body["params"])
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    def _block(self, params: list[Any]) -> dict[str, Any]:
        return {
            "number": "0x5",
            "hash": PARENT_HASH,
            "parentHash": "0x" + "00" * 32,
            "timestamp": hex(self.parent_timestamp),
        }

    def _balance(self, params: list[Any]) -> str:
        return hex(self.balances.get(params[0].lower(), 0))

    def _forkchoice(self, params: list[Any]) -> dict[str, Any]:
        state, attributes = params
        if attributes is not None:
            self._attributes = attributes
            return {
                "payloadStatus": {"status": "VALID", "latestValidHash": state["headBlockHash"], "validationError": None},
                "payloadId": self.payload_id,
            }
        self.head = state["headBlockHash"]
        for w in (self._attributes or {}).get("withdrawals", []):
            address = w["address"].lower()
            self.balances[address] = self.balances.get(address, 0) + int(w["amount"], 16) * GWEI
        return {
            "payloadStatus": {"status": self.head_status, "latestValidHash": self.head, "validationError": None},
            "payloadId": None,
        }

    def _get_payload(self, params: list[Any]) -> dict[str, Any]:
        attributes = self._attributes or {}
        payload: dict[str, Any] = {
            "parentHash": PARENT_HASH,
            "feeRecipient": attributes.get("suggestedFeeRecipient", "0x" + "00" * 20),
            "blockNumber": "0x6",
            "blockHash": NEW_BLOCK_HASH,
            "timestamp": attributes.get("timestamp", "0x0"),
        }
        if not self.omit_withdrawals:
            if self.returned_withdrawals is not None:
                payload["withdrawals"] = self.returned_withdrawals
            else:
                payload["withdrawals"] = attributes.get("withdrawals", [])
        payload.update(self.payload_extra)
        envelope = {
            "executionPayload": payload,
            "blockValue": "0x0",
            "blobsBundle": {"commitments": [], "proofs": [], "blobs": []},
            "shouldOverrideBuilder": False,
        }
        envelope.update(self.envelope_extra)
        return envelope

    def _new_payload(self, params: list[Any]) -> dict[str, Any]:
        valid = self.status == "VALID"
        return {
            "status": self.status,
            "latestValidHash": NEW_BLOCK_HASH if valid else None,
            "validationError": None if valid else "block rejected",
        }


def mock_transport(handler: Any, url: str, credential: JwtCredential | None = None) -> JsonRpcTransport:
    return JsonRpcTransport(
        url,
        credential=credential,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.fixture
def secret() -> bytes:
    return bytes(range(32))


@pytest.fixture
def credential(secret: bytes) -> JwtCredential:
    return JwtCredential(secret)


@pytest.fixture
def node(secret: bytes) -> FakeEngineNode:
    return FakeEngineNode(secret)


@pytest.fixture
def engine(node: FakeEngineNode, credential: JwtCredential) -> EngineClient:
    return EngineClient(mock_transport(node.handler, ENGINE_URL, credential))


@pytest.fixture
def public(node: FakeEngineNode) -> PublicClient:
    return PublicClient(mock_transport(node.handler, PUBLIC_URL))
