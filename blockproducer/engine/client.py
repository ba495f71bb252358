"""Typed Engine API and public ``eth`` clients built on JsonRpcTransport."""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from blockproducer.engine.rpc import JsonRpcTransport
from blockproducer.engine.types import (
    BlockInfo,
    CandidatePayload,
    ForkchoiceState,
    ForkchoiceUpdateResponse,
    PayloadAttributes,
    PayloadStatus,
)
from blockproducer.engine.versioning import SubmissionPlan, build_new_payload_params
from blockproducer.utils.exceptions import TransportError
from blockproducer.utils.helpers import normalize_fixed_hex, parse_quantity

M = TypeVar("M", bound=BaseModel)


class EngineClient:
    """Privileged engine_* methods used by the block-production handshake."""

    def __init__(
        self,
        transport: JsonRpcTransport,
        *,
        forkchoice_method: str = "engine_forkchoiceUpdatedV3",
        get_payload_method: str = "engine_getPayloadV3",
    ):
        if not transport.privileged:
            raise ValueError("EngineClient requires a transport with a JWT credential")
        self.transport = transport
        self.forkchoice_method = forkchoice_method
        self.get_payload_method = get_payload_method

    async def close(self) -> None:
        await self.transport.close()

    async def forkchoice_updated(
        self,
        state: ForkchoiceState,
        attributes: PayloadAttributes | None = None,
        *,
        timeout: float | None = None,
    ) -> ForkchoiceUpdateResponse:
        params = [state.to_wire(), attributes.to_wire() if attributes is not None else None]
        result = await self.transport.call(self.forkchoice_method, params, timeout=timeout)
        if not isinstance(result, dict):
            return ForkchoiceUpdateResponse()
        return _validate(ForkchoiceUpdateResponse, result, self.forkchoice_method)

    async def get_payload(self, payload_id: str, *, timeout: float | None = None) -> CandidatePayload:
        result = await self.transport.call(self.get_payload_method, [payload_id], timeout=timeout)
        return CandidatePayload.from_response(result)

    async def new_payload(
        self,
        candidate: CandidatePayload,
        plan: SubmissionPlan,
        parent_beacon_block_root: str | None = None,
        *,
        timeout: float | None = None,
    ) -> PayloadStatus:
        params = build_new_payload_params(candidate, plan, parent_beacon_block_root)
        result = await self.transport.call(plan.method, params, timeout=timeout)
        if not isinstance(result, dict):
            return PayloadStatus()
        return _validate(PayloadStatus, result, plan.method)


class PublicClient:
    """Unauthenticated reads (balances, blocks). Observability only."""

    def __init__(self, transport: JsonRpcTransport):
        self.transport = transport

    async def close(self) -> None:
        await self.transport.close()

    async def get_balance(self, address: str, block: str = "latest") -> int:
        """Balance in wei."""
        result = await self.transport.call("eth_getBalance", [normalize_fixed_hex(address, 20), block])
        return _quantity(result, "eth_getBalance")

    async def block_number(self) -> int:
        result = await self.transport.call("eth_blockNumber", [])
        return _quantity(result, "eth_blockNumber")

    async def get_block_by_number(self, tag: str | int = "latest", full: bool = False) -> BlockInfo:
        block_tag = hex(tag) if isinstance(tag, int) else tag
        result = await self.transport.call("eth_getBlockByNumber", [block_tag, full])
        if not isinstance(result, dict):
            raise TransportError(
                f"eth_getBlockByNumber: block {block_tag} not found",
                code="BAD_RESPONSE",
                details={"method": "eth_getBlockByNumber", "tag": block_tag},
            )
        try:
            return BlockInfo.from_response(result)
        except ValueError as e:
            raise TransportError(
                f"eth_getBlockByNumber: malformed block: {e}",
                code="BAD_RESPONSE",
                details={"method": "eth_getBlockByNumber", "tag": block_tag},
            ) from e


def _validate(model: type[M], result: dict[str, Any], method: str) -> M:
    try:
        return model.model_validate(result)
    except PydanticValidationError as e:
        raise TransportError(
            f"{method}: unexpected result shape: {e.error_count()} error(s)",
            code="BAD_RESPONSE",
            details={"method": method, "received": result},
        ) from e


def _quantity(value: Any, method: str) -> int:
    try:
        return parse_quantity(value)
    except ValueError as e:
        raise TransportError(
            f"{method}: expected hex quantity, got {value!r}",
            code="BAD_RESPONSE",
            details={"method": method},
        ) from e
