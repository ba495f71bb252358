"""Payload submission version negotiation.

The node describes itself through the candidate it built: a Prague payload
comes with execution requests, a Cancun payload does not. No local fork
schedule is consulted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from blockproducer.engine.types import ZERO_HASH, CandidatePayload
from blockproducer.utils.exceptions import VersionNegotiationAmbiguousError

# sha256 of the empty byte string: the requests commitment of a block with no requests.
EMPTY_REQUESTS_HASH = "0xe3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


class ProtocolVersion(str, Enum):
    V3 = "V3"  # Cancun
    V4 = "V4"  # Prague: adds executionRequests

    @property
    def new_payload_method(self) -> str:
        return f"engine_newPayload{self.value}"


@dataclass(frozen=True)
class SubmissionPlan:
    version: ProtocolVersion
    execution_requests: list[Any] = field(default_factory=list)

    @property
    def method(self) -> str:
        return self.version.new_payload_method


def select_protocol_version(candidate: CandidatePayload) -> SubmissionPlan:
    """Pick the newPayload variant from the shape of a retrieved candidate."""
    if candidate.has_execution_requests:
        requests = candidate.execution_requests
        if not isinstance(requests, list):
            raise VersionNegotiationAmbiguousError(
                f"executionRequests present but not a list ({type(requests).__name__})"
            )
        return SubmissionPlan(ProtocolVersion.V4, list(requests))

    requests_hash = candidate.requests_hash
    if requests_hash is not None:
        if requests_hash.lower() == EMPTY_REQUESTS_HASH:
            return SubmissionPlan(ProtocolVersion.V4, [])
        raise VersionNegotiationAmbiguousError(
            f"requestsHash {requests_hash} without executionRequests to submit"
        )

    return SubmissionPlan(ProtocolVersion.V3)


def build_new_payload_params(
    candidate: CandidatePayload,
    plan: SubmissionPlan,
    parent_beacon_block_root: str | None = None,
) -> list[Any]:
    """Positional params for engine_newPayloadV3 / engine_newPayloadV4."""
    params: list[Any] = [
        candidate.execution_payload,
        candidate.versioned_hashes,
        parent_beacon_block_root or ZERO_HASH,
    ]
    if plan.version is ProtocolVersion.V4:
        params.append(list(plan.execution_requests))
    return params
