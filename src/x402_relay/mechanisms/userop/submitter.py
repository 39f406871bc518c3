"""
OperationSubmitter - sends a signed UserOperation to the bundler and polls for inclusion.
"""

import asyncio
import logging
from typing import Any

from x402_relay.exceptions import BadRequest, UpstreamError
from x402_relay.mechanisms.userop.lifecycle import OperationLifecycle, OperationState
from x402_relay.mechanisms.userop.types import UserOperation, parse_user_operation
from x402_relay.types import SubmitResult
from x402_relay.utils.bundler import BundlerClient
from x402_relay.utils.polling import PollPolicy, Sleep, poll_until

logger = logging.getLogger(__name__)

RECEIPT_POLL_POLICY = PollPolicy(max_attempts=30, interval=2.0)

PENDING_MESSAGE = "UserOperation submitted, waiting for confirmation"


class OperationSubmitter:
    """
    Submits exactly once, then polls ``eth_getUserOperationReceipt``.

    A missing receipt after the poll budget is not an error: the operation is
    reported as pending with its hash so the caller can check later.
    """

    def __init__(
        self,
        bundler: BundlerClient,
        poll_policy: PollPolicy = RECEIPT_POLL_POLICY,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._bundler = bundler
        self._poll_policy = poll_policy
        self._sleep = sleep

    async def submit(
        self,
        raw_operation: Any,
        stop: asyncio.Event | None = None,
    ) -> SubmitResult:
        """Parse, submit and await a signed UserOperation.

        Raises:
            BadRequest: Malformed or unsigned operation
            BundlerRejected: ``eth_sendUserOperation`` returned an error
            UpstreamUnavailable: Bundler transport failure during submission
        """
        op = parse_user_operation(raw_operation)
        if not op.is_signed:
            raise BadRequest("Signed userOperation is required")
        return await self.submit_operation(op, stop=stop)

    async def submit_operation(
        self,
        op: UserOperation,
        stop: asyncio.Event | None = None,
    ) -> SubmitResult:
        lifecycle = OperationLifecycle(OperationState.SIGNED)

        logger.info(
            "Submitting %s UserOperation from %s to EntryPoint %s",
            op.VERSION,
            op.sender,
            op.entry_point,
        )
        user_op_hash = await self._bundler.send_user_operation(op.to_rpc(), op.entry_point)
        lifecycle.transition(OperationState.SUBMITTED)
        logger.info("UserOperation submitted, hash: %s", user_op_hash)

        outcome = await poll_until(
            lambda: self._fetch_receipt(user_op_hash),
            self._poll_policy,
            stop=stop,
            sleep=self._sleep,
            label=f"receipt {user_op_hash}",
        )

        if not outcome.found:
            lifecycle.transition(OperationState.PENDING)
            logger.info(
                "No receipt for %s after %d polls, reporting pending",
                user_op_hash,
                outcome.attempts,
            )
            return SubmitResult(
                success=True,
                userOpHash=user_op_hash,
                status=lifecycle.state.value,
                message=PENDING_MESSAGE,
            )

        receipt = outcome.result
        succeeded = bool(receipt.get("success"))
        lifecycle.transition(OperationState.CONFIRMED if succeeded else OperationState.FAILED)
        inner = receipt.get("receipt") or {}
        block_number = inner.get("blockNumber")

        if not succeeded:
            logger.error("UserOperation %s reverted on-chain", user_op_hash)

        return SubmitResult(
            success=succeeded,
            userOpHash=user_op_hash,
            transactionHash=inner.get("transactionHash"),
            blockNumber=str(block_number) if block_number is not None else None,
            status=lifecycle.state.value,
        )

    async def _fetch_receipt(self, user_op_hash: str) -> dict[str, Any] | None:
        try:
            receipt = await self._bundler.get_user_operation_receipt(user_op_hash)
        except UpstreamError as e:
            # The next attempt retries the read
            logger.warning("Receipt poll for %s failed: %s", user_op_hash, e)
            return None
        return receipt if isinstance(receipt, dict) and receipt else None
