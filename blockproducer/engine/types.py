"""
Types used for the ``engine`` and ``eth`` namespace requests.

Wire encoding: quantities are 0x-prefixed hex, hashes are 32-byte hex,
addresses are 20-byte hex. Models serialize to camelCase via ``to_wire``.
"""

from __future__ import annotations

import copy
import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, PlainSerializer
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from blockproducer.utils.exceptions import PayloadShapeMismatchError
from blockproducer.utils.helpers import normalize_fixed_hex, parse_quantity, to_quantity

HexQuantity = Annotated[int, BeforeValidator(parse_quantity), PlainSerializer(to_quantity, return_type=str)]
Hash32 = Annotated[str, AfterValidator(lambda v: normalize_fixed_hex(v, 32))]
Address = Annotated[str, AfterValidator(lambda v: normalize_fixed_hex(v, 20))]

ZERO_HASH = "0x" + "00" * 32
ZERO_ADDRESS = "0x" + "00" * 20
VERSIONED_HASH_VERSION_KZG = b"\x01"


class EngineModel(BaseModel):
    """Frozen camelCase model shared by all Engine API structures."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ForkchoiceState(EngineModel):
    """Head/safe/finalized block hashes handed to engine_forkchoiceUpdated."""

    head_block_hash: Hash32
    safe_block_hash: Hash32
    finalized_block_hash: Hash32

    @classmethod
    def pinned(cls, block_hash: str) -> ForkchoiceState:
        """All three references at one block (a fresh chain tip)."""
        return cls(head_block_hash=block_hash, safe_block_hash=block_hash, finalized_block_hash=block_hash)

    def advance_head(self, new_head: str) -> ForkchoiceState:
        """Move head and safe to ``new_head``; finalized stays where it was."""
        return ForkchoiceState(
            head_block_hash=new_head,
            safe_block_hash=new_head,
            finalized_block_hash=self.finalized_block_hash,
        )


class Withdrawal(EngineModel):
    """EIP-4895 withdrawal; ``amount`` is in Gwei."""

    index: HexQuantity
    validator_index: HexQuantity
    address: Address
    amount: HexQuantity

    def matches(self, other: Withdrawal) -> bool:
        return self.address == other.address and self.amount == other.amount


class PayloadAttributes(EngineModel):
    """Block-construction parameters for engine_forkchoiceUpdated (V3 shape)."""

    timestamp: HexQuantity
    prev_randao: Hash32 = ZERO_HASH
    suggested_fee_recipient: Address = ZERO_ADDRESS
    withdrawals: tuple[Withdrawal, ...] | None = None
    parent_beacon_block_root: Hash32 | None = None


class PayloadStatusEnum(str, Enum):
    VALID = "VALID"
    INVALID = "INVALID"
    SYNCING = "SYNCING"
    ACCEPTED = "ACCEPTED"
    INVALID_BLOCK_HASH = "INVALID_BLOCK_HASH"


class PayloadStatus(EngineModel):
    """Node verdict on a payload; ``status`` kept as the raw string."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="ignore")

    status: str | None = None
    latest_valid_hash: str | None = None
    validation_error: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.status == PayloadStatusEnum.VALID.value


class ForkchoiceUpdateResponse(EngineModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="ignore")

    payload_status: PayloadStatus | None = None
    payload_id: str | None = None


def kzg_to_versioned_hash(commitment: str) -> str:
    """EIP-4844 versioned hash of a KZG commitment."""
    raw = bytes.fromhex(commitment[2:] if commitment.startswith("0x") else commitment)
    return "0x" + (VERSIONED_HASH_VERSION_KZG + hashlib.sha256(raw).digest()[1:]).hex()


_MISSING = object()


@dataclass(frozen=True)
class CandidatePayload:
    """
    Result of engine_getPayload.

    The raw envelope is kept (deep-copied) so the execution payload can be
    submitted back verbatim; only the fields the handshake inspects get typed
    accessors.
    """

    raw: dict[str, Any]
    execution_payload: dict[str, Any] = field(repr=False)
    block_hash: str
    block_number: int

    @classmethod
    def from_response(cls, result: Any) -> CandidatePayload:
        if not isinstance(result, dict):
            raise PayloadShapeMismatchError(
                "getPayload result is not an object", expected="object", received=type(result).__name__
            )
        raw = copy.deepcopy(result)
        # V1 returns the execution payload bare; V2+ wrap it in an envelope.
        payload = raw.get("executionPayload") if "executionPayload" in raw else (raw if "blockHash" in raw else None)
        if not isinstance(payload, dict):
            raise PayloadShapeMismatchError(
                "getPayload result has no executionPayload", expected="executionPayload", received=sorted(raw)
            )
        block_hash = payload.get("blockHash")
        if not isinstance(block_hash, str):
            raise PayloadShapeMismatchError("executionPayload has no blockHash", expected="blockHash", received=sorted(payload))
        try:
            block_hash = normalize_fixed_hex(block_hash, 32)
            block_number = parse_quantity(payload.get("blockNumber"))
        except (TypeError, ValueError) as e:
            raise PayloadShapeMismatchError(
                f"executionPayload has malformed blockHash/blockNumber: {e}",
                expected="32-byte blockHash and hex blockNumber",
                received={"blockHash": payload.get("blockHash"), "blockNumber": payload.get("blockNumber")},
            ) from e
        return cls(raw=raw, execution_payload=payload, block_hash=block_hash, block_number=block_number)

    @property
    def has_withdrawals_field(self) -> bool:
        return isinstance(self.execution_payload.get("withdrawals"), list)

    @property
    def withdrawals(self) -> list[Withdrawal] | None:
        items = self.execution_payload.get("withdrawals")
        if not isinstance(items, list):
            return None
        try:
            return [Withdrawal.model_validate(item) for item in items]
        except PydanticValidationError as e:
            raise PayloadShapeMismatchError(
                f"executionPayload.withdrawals is malformed: {e.error_count()} error(s)",
                expected="list of withdrawals",
                received=items,
            ) from e

    @property
    def execution_requests(self) -> Any:
        """Envelope ``executionRequests`` or the ``_MISSING`` sentinel."""
        return self.raw.get("executionRequests", _MISSING) if "executionPayload" in self.raw else _MISSING

    @property
    def has_execution_requests(self) -> bool:
        return self.execution_requests is not _MISSING

    @property
    def requests_hash(self) -> str | None:
        value = self.execution_payload.get("requestsHash")
        return value if isinstance(value, str) else None

    @property
    def versioned_hashes(self) -> list[str]:
        bundle = self.raw.get("blobsBundle") if "executionPayload" in self.raw else None
        commitments = bundle.get("commitments") if isinstance(bundle, dict) else None
        if not isinstance(commitments, list):
            return []
        return [kzg_to_versioned_hash(c) for c in commitments]

    def summary(self) -> dict[str, Any]:
        withdrawals = self.execution_payload.get("withdrawals")
        return {
            "blockNumber": self.block_number,
            "blockHash": self.block_hash,
            "withdrawals": len(withdrawals) if isinstance(withdrawals, list) else None,
        }


@dataclass(frozen=True)
class BlockInfo:
    """The subset of eth_getBlockByNumber the producer needs."""

    number: int
    hash: str
    timestamp: int = 0
    raw: dict[str, Any] = field(repr=False, default_factory=dict)

    @classmethod
    def from_response(cls, result: dict[str, Any]) -> BlockInfo:
        return cls(
            number=parse_quantity(result.get("number", "0x0")),
            hash=normalize_fixed_hex(str(result.get("hash") or ""), 32),
            timestamp=parse_quantity(result.get("timestamp", "0x0")),
            raw=copy.deepcopy(result),
        )
