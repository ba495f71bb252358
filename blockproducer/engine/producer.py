"""
Produce one block that credits addresses through withdrawals.

Reads the chain tip, pins fork choice to it, runs the handshake with the
given withdrawals, and reports balances before and after through the public
endpoint. Balance reads are best effort: a failing public endpoint is logged
and never aborts production.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Sequence

from loguru import logger

from blockproducer.engine.client import EngineClient, PublicClient
from blockproducer.engine.orchestrator import BuildOrchestrator, BuildResult
from blockproducer.engine.types import (
    ZERO_ADDRESS,
    ZERO_HASH,
    BlockInfo,
    ForkchoiceState,
    PayloadAttributes,
    Withdrawal,
)
from blockproducer.utils.exceptions import BlockProducerError, sanitize_error_message

GWEI = 10**9
WEI_PER_ETH = 10**18


@dataclass
class ProductionReport:
    parent: BlockInfo
    result: BuildResult
    balances_before: dict[str, int | None] = field(default_factory=dict)
    balances_after: dict[str, int | None] = field(default_factory=dict)

    def balance_change(self, address: str) -> int | None:
        before = self.balances_before.get(address)
        after = self.balances_after.get(address)
        if before is None or after is None:
            return None
        return after - before


def build_withdrawals(recipients: Sequence[tuple[str, int]], start_index: int = 0) -> list[Withdrawal]:
    """One withdrawal per (address, amount_gwei), indices assigned in order."""
    return [
        Withdrawal(index=start_index + i, validator_index=0, address=address, amount=amount_gwei)
        for i, (address, amount_gwei) in enumerate(recipients)
    ]


async def _read_balances(public: PublicClient | None, addresses: Sequence[str]) -> dict[str, int | None]:
    balances: dict[str, int | None] = {}
    for address in addresses:
        if public is None:
            balances[address] = None
            continue
        try:
            balances[address] = await public.get_balance(address)
        except BlockProducerError as e:
            logger.warning(f"Balance read failed for {address}: {sanitize_error_message(str(e))}")
            balances[address] = None
    return balances


async def produce_block_with_withdrawals(
    engine: EngineClient,
    withdrawals: Sequence[Withdrawal],
    *,
    public: PublicClient | None = None,
    fee_recipient: str = ZERO_ADDRESS,
    prev_randao: str = ZERO_HASH,
    parent_beacon_block_root: str | None = ZERO_HASH,
    call_timeout: float | None = None,
    clock: Callable[[], float] = time.time,
) -> ProductionReport:
    """Run one production session on top of the latest block."""
    addresses = list(dict.fromkeys(w.address for w in withdrawals))
    balances_before = await _read_balances(public, addresses)

    # eth_* reads are served on the engine port too; the tip comes from the node being driven.
    parent = await PublicClient(engine.transport).get_block_by_number("latest")
    logger.info(f"Parent block #{parent.number} {parent.hash}")

    attributes = PayloadAttributes(
        timestamp=max(int(clock()), parent.timestamp + 1),
        prev_randao=prev_randao,
        suggested_fee_recipient=fee_recipient,
        withdrawals=tuple(withdrawals),
        parent_beacon_block_root=parent_beacon_block_root,
    )
    orchestrator = BuildOrchestrator(engine, call_timeout=call_timeout)
    result = await orchestrator.run(ForkchoiceState.pinned(parent.hash), attributes)

    balances_after = await _read_balances(public, addresses)
    return ProductionReport(
        parent=parent,
        result=result,
        balances_before=balances_before,
        balances_after=balances_after,
    )
