"""
Block production handshake.

One ``BuildOrchestrator`` drives one attempt through the Engine API:

1. engine_forkchoiceUpdated with payload attributes  -> payloadId
2. engine_getPayload(payloadId)                       -> candidate block
3. engine_newPayloadV3/V4(candidate)                  -> status VALID
4. engine_forkchoiceUpdated without attributes        -> new canonical head

Steps run strictly in order, each call is issued once, and the first failure
moves the session to ABORTED and is re-raised to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from loguru import logger

from blockproducer.engine.client import EngineClient
from blockproducer.engine.types import (
    CandidatePayload,
    ForkchoiceState,
    ForkchoiceUpdateResponse,
    PayloadAttributes,
    PayloadStatus,
    Withdrawal,
)
from blockproducer.engine.versioning import SubmissionPlan, select_protocol_version
from blockproducer.utils.exceptions import (
    BlockProducerError,
    BuildStateError,
    InvalidPayloadStatusError,
    MissingSessionIdError,
    PayloadShapeMismatchError,
    sanitize_error_message,
)


class BuildState(str, Enum):
    IDLE = "idle"
    FORKCHOICE_REQUESTED = "forkchoice_requested"
    PAYLOAD_BUILDING = "payload_building"
    PAYLOAD_READY = "payload_ready"
    PAYLOAD_VALIDATED = "payload_validated"
    HEAD_UPDATED = "head_updated"
    ABORTED = "aborted"


_NEXT_STATE: dict[BuildState, BuildState] = {
    BuildState.IDLE: BuildState.FORKCHOICE_REQUESTED,
    BuildState.FORKCHOICE_REQUESTED: BuildState.PAYLOAD_BUILDING,
    BuildState.PAYLOAD_BUILDING: BuildState.PAYLOAD_READY,
    BuildState.PAYLOAD_READY: BuildState.PAYLOAD_VALIDATED,
    BuildState.PAYLOAD_VALIDATED: BuildState.HEAD_UPDATED,
}


@dataclass(frozen=True)
class BuildResult:
    """Everything a successful session produced."""
    payload_id: str
    candidate: CandidatePayload
    plan: SubmissionPlan
    payload_status: PayloadStatus
    head_state: ForkchoiceState
    head_response: ForkchoiceUpdateResponse

    @property
    def block_hash(self) -> str:
        return self.candidate.block_hash

    @property
    def block_number(self) -> int:
        return self.candidate.block_number


def check_withdrawals(requested: Sequence[Withdrawal] | None, candidate: CandidatePayload) -> None:
    """
    Assert the candidate carries exactly the requested withdrawals, in order.

    Nothing is checked when no withdrawals were requested (pre-Shanghai shape).
    """
    if requested is None:
        return
    if not candidate.has_withdrawals_field:
        raise PayloadShapeMismatchError(
            "executionPayload has no withdrawals field",
            expected=len(requested),
            received=None,
        )
    returned = candidate.withdrawals or []
    if len(returned) != len(requested):
        raise PayloadShapeMismatchError(
            f"expected {len(requested)} withdrawal(s), payload has {len(returned)}",
            expected=[w.to_wire() for w in requested],
            received=[w.to_wire() for w in returned],
        )
    for position, (want, got) in enumerate(zip(requested, returned)):
        if not want.matches(got):
            raise PayloadShapeMismatchError(
                f"withdrawal #{position} differs from request",
                expected=want.to_wire(),
                received=got.to_wire(),
            )


class BuildOrchestrator:
    """State machine for a single block-production attempt."""

    def __init__(self, engine: EngineClient, *, call_timeout: float | None = None):
        """
        Args:
            engine: Privileged Engine API client
            call_timeout: Per-call deadline; None uses the transport default
        """
        self.engine = engine
        self.call_timeout = call_timeout
        self.state = BuildState.IDLE
        self.history: list[BuildState] = [BuildState.IDLE]
        self.step: str | None = None
        self.payload_id: str | None = None
        self.candidate: CandidatePayload | None = None
        self.plan: SubmissionPlan | None = None
        self.failure: Exception | None = None

    def _advance(self, target: BuildState) -> None:
        expected = _NEXT_STATE.get(self.state)
        if expected is not target:
            raise BuildStateError(expected=target.value, actual=self.state.value)
        logger.debug(f"build {self.state.value} -> {target.value}")
        self.state = target
        self.history.append(target)

    def _abort(self, exc: Exception) -> None:
        self.failure = exc
        if isinstance(exc, BlockProducerError):
            exc.details.setdefault("step", self.step)
            exc.details.setdefault("state", self.state.value)
        logger.error(
            f"Block production aborted at {self.step} ({self.state.value}): "
            f"{sanitize_error_message(str(exc))}"
        )
        self.state = BuildState.ABORTED
        self.history.append(BuildState.ABORTED)

    async def run(self, forkchoice: ForkchoiceState, attributes: PayloadAttributes) -> BuildResult:
        """Run the four-step handshake. Raises the first error after aborting."""
        if self.state is not BuildState.IDLE:
            raise BuildStateError(expected=BuildState.IDLE.value, actual=self.state.value)
        try:
            payload_id = await self._request_build(forkchoice, attributes)
            candidate = await self._retrieve_payload(payload_id, attributes)
            plan, status = await self._submit_payload(candidate, attributes)
            head_state, head_response = await self._update_head(forkchoice, candidate)
        except Exception as exc:
            self._abort(exc)
            raise
        return BuildResult(
            payload_id=payload_id,
            candidate=candidate,
            plan=plan,
            payload_status=status,
            head_state=head_state,
            head_response=head_response,
        )

    async def _request_build(self, forkchoice: ForkchoiceState, attributes: PayloadAttributes) -> str:
        self.step = "forkchoice_updated"
        self._advance(BuildState.FORKCHOICE_REQUESTED)
        response = await self.engine.forkchoice_updated(forkchoice, attributes, timeout=self.call_timeout)
        if not response.payload_id:
            raise MissingSessionIdError(response.model_dump(by_alias=True))
        self.payload_id = response.payload_id
        logger.info(f"Build started: payloadId={response.payload_id}")
        return response.payload_id

    async def _retrieve_payload(self, payload_id: str, attributes: PayloadAttributes) -> CandidatePayload:
        self.step = "get_payload"
        self._advance(BuildState.PAYLOAD_BUILDING)
        candidate = await self.engine.get_payload(payload_id, timeout=self.call_timeout)
        check_withdrawals(attributes.withdrawals, candidate)
        self.candidate = candidate
        self._advance(BuildState.PAYLOAD_READY)
        logger.info(f"Candidate ready: block #{candidate.block_number} {candidate.block_hash}")
        logger.debug(f"Candidate summary: {candidate.summary()}")
        return candidate

    async def _submit_payload(
        self,
        candidate: CandidatePayload,
        attributes: PayloadAttributes,
    ) -> tuple[SubmissionPlan, PayloadStatus]:
        self.step = "new_payload"
        plan = select_protocol_version(candidate)
        self.plan = plan
        logger.info(f"Submitting payload via {plan.method}")
        status = await self.engine.new_payload(
            candidate,
            plan,
            attributes.parent_beacon_block_root,
            timeout=self.call_timeout,
        )
        if not status.is_valid:
            raise InvalidPayloadStatusError(status.status, status.validation_error)
        self._advance(BuildState.PAYLOAD_VALIDATED)
        return plan, status

    async def _update_head(
        self,
        forkchoice: ForkchoiceState,
        candidate: CandidatePayload,
    ) -> tuple[ForkchoiceState, ForkchoiceUpdateResponse]:
        self.step = "forkchoice_finalize"
        head_state = forkchoice.advance_head(candidate.block_hash)
        response = await self.engine.forkchoice_updated(head_state, None, timeout=self.call_timeout)
        status = response.payload_status.status if response.payload_status else None
        if status and status != "VALID":
            logger.warning(f"Head update returned status {status}")
        self._advance(BuildState.HEAD_UPDATED)
        logger.info(f"New head: block #{candidate.block_number} {candidate.block_hash}")
        return head_state, response
