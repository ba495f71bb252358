"""Engine API client and block-production handshake."""

from blockproducer.engine.types import (
    CandidatePayload,
    ForkchoiceState,
    ForkchoiceUpdateResponse,
    PayloadAttributes,
    PayloadStatus,
    PayloadStatusEnum,
    Withdrawal,
)
from blockproducer.engine.rpc import JsonRpcTransport
from blockproducer.engine.client import EngineClient, PublicClient
from blockproducer.engine.versioning import ProtocolVersion, SubmissionPlan, select_protocol_version
from blockproducer.engine.orchestrator import BuildOrchestrator, BuildResult, BuildState

__all__ = [
    "CandidatePayload",
    "ForkchoiceState",
    "ForkchoiceUpdateResponse",
    "PayloadAttributes",
    "PayloadStatus",
    "PayloadStatusEnum",
    "Withdrawal",
    "JsonRpcTransport",
    "EngineClient",
    "PublicClient",
    "ProtocolVersion",
    "SubmissionPlan",
    "select_protocol_version",
    "BuildOrchestrator",
    "BuildResult",
    "BuildState",
]
