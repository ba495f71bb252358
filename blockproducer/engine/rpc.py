"""JSON-RPC 2.0 transport over httpx for the engine and public endpoints."""

from __future__ import annotations

import itertools
from typing import Any

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from blockproducer.auth.credentials import JwtCredential
from blockproducer.utils.exceptions import (
    HttpFailureError,
    RpcError,
    RpcTimeoutError,
    TransportError,
)

JSONRPC_VERSION = "2.0"


class RpcRequest(BaseModel):
    jsonrpc: str = JSONRPC_VERSION
    id: int
    method: str
    params: list[Any]


class RpcErrorBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: int | None = None
    message: str = ""
    data: Any = None


class RpcResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    jsonrpc: str | None = None
    id: int | str | None = None
    result: Any = None
    error: Any = None


class JsonRpcTransport:
    """
    One endpoint, one httpx client.

    When a credential is given every call carries a freshly issued
    ``Authorization: Bearer`` header (privileged endpoint); without one the
    endpoint is treated as public. Calls are never retried.
    """

    def __init__(
        self,
        url: str,
        *,
        credential: JwtCredential | None = None,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize transport.

        Args:
            url: JSON-RPC endpoint URL
            credential: Shared-secret credential for privileged calls
            timeout: Default per-call deadline in seconds
            http_client: Custom HTTP client (not closed by ``close``)
        """
        self.url = url
        self.credential = credential
        self.timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None
        self._ids = itertools.count(1)

    @property
    def privileged(self) -> bool:
        return self.credential is not None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close HTTP client"""
        if self._client and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> JsonRpcTransport:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def build_request(self, method: str, params: list[Any]) -> RpcRequest:
        return RpcRequest(id=next(self._ids), method=method, params=list(params))

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.credential is not None:
            headers.update(self.credential.auth_headers())
        return headers

    async def call(self, method: str, params: list[Any], *, timeout: float | None = None) -> Any:
        """Send one JSON-RPC call and return its ``result``."""
        client = await self._get_client()
        request = self.build_request(method, params)
        deadline = self.timeout if timeout is None else timeout
        logger.debug(f"rpc -> {self.url} {method} id={request.id}")

        try:
            resp = await client.post(
                self.url,
                json=request.model_dump(),
                headers=self._headers(),
                timeout=deadline,
            )
        except httpx.TimeoutException as exc:
            raise RpcTimeoutError(method, deadline) from exc
        except httpx.RequestError as exc:
            raise HttpFailureError(method, None, str(exc)) from exc

        return self._parse_response(method, resp)

    @staticmethod
    def _parse_response(method: str, resp: httpx.Response) -> Any:
        status_code = resp.status_code
        try:
            body = resp.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("error"):
            error = body["error"]
            if not isinstance(error, dict):
                error = {"message": str(error)}
            try:
                err = RpcErrorBody.model_validate(error)
            except PydanticValidationError:
                err = RpcErrorBody(message=str(error))
            logger.warning(f"rpc <- {method} error {err.code}: {err.message}")
            raise RpcError(method, err.code, err.message, err.data)

        if body is None or not 200 <= status_code < 300:
            raise HttpFailureError(method, status_code, resp.text)

        if not isinstance(body, dict) or "result" not in body:
            raise TransportError(
                f"{method}: malformed JSON-RPC response",
                code="BAD_RESPONSE",
                details={"method": method, "status": status_code},
            )
        try:
            return RpcResponse.model_validate(body).result
        except PydanticValidationError as exc:
            raise TransportError(
                f"{method}: malformed JSON-RPC envelope",
                code="BAD_RESPONSE",
                details={"method": method, "status": status_code},
            ) from exc
