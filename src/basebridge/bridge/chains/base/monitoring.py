"""
Polling of validator approval and message execution on Base.

Both loops only observe state. They sleep between polls, check an optional
``asyncio.Event`` for cancellation before each poll and never resubmit
anything.
"""

import asyncio
from typing import Optional

from ....errors import ApprovalTimeoutError, RelayCancelledError, create_timeout_error
from ....logging import get_logger
from ...message_hashing import to_hex
from .client import BaseBridgeClient

logger = get_logger(__name__)

DEFAULT_APPROVAL_TIMEOUT = 600.0
DEFAULT_APPROVAL_INTERVAL = 5.0
DEFAULT_EXECUTION_INTERVAL = 10.0


def _check_cancelled(cancel_event: Optional[asyncio.Event], step: str, message_hash: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise RelayCancelledError(
            f"{step} cancelled", step=step, message_hash=message_hash
        )


class ApprovalWaiter:
    """Waits until the bridge validator approves a message hash."""

    def __init__(
        self,
        client: BaseBridgeClient,
        timeout: float = DEFAULT_APPROVAL_TIMEOUT,
        interval: float = DEFAULT_APPROVAL_INTERVAL,
    ):
        self.client = client
        self.timeout = timeout
        self.interval = interval

    async def wait_for_approval(
        self,
        message_hash: bytes,
        timeout: Optional[float] = None,
        interval: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> int:
        """Poll ``validMessages`` until it returns true.

        Returns the number of polls made. Raises ``ApprovalTimeoutError``
        once ``timeout`` seconds have elapsed without approval.
        """
        timeout = self.timeout if timeout is None else timeout
        interval = self.interval if interval is None else interval
        hash_hex = to_hex(message_hash)

        validator = await self.client.bridge_validator()
        logger.info(f"Validator address: {validator}")

        loop = asyncio.get_running_loop()
        started = loop.time()
        polls = 0
        while True:
            _check_cancelled(cancel_event, "wait_for_approval", hash_hex)
            logger.debug(f"Waiting for approval of message hash: {hash_hex}")
            polls += 1
            if await self.client.is_approved(validator, message_hash):
                logger.success("Message approved by BridgeValidator")
                return polls

            elapsed = loop.time() - started
            if elapsed >= timeout:
                raise ApprovalTimeoutError(
                    f"Timed out waiting for BridgeValidator approval after {polls} poll(s)",
                    timeout_duration=timeout,
                    step="wait_for_approval",
                    message_hash=hash_hex,
                )
            await asyncio.sleep(interval)


class ExecutionMonitor:
    """Observes whether a message has been executed on Base."""

    def __init__(self, client: BaseBridgeClient, interval: float = DEFAULT_EXECUTION_INTERVAL):
        self.client = client
        self.interval = interval

    async def monitor_execution(
        self,
        message_hash: bytes,
        interval: Optional[float] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> int:
        """Poll ``successes`` until it returns true; unbounded unless ``timeout`` is set."""
        interval = self.interval if interval is None else interval
        hash_hex = to_hex(message_hash)

        loop = asyncio.get_running_loop()
        started = loop.time()
        polls = 0
        reported_failure = False
        while True:
            _check_cancelled(cancel_event, "monitor_execution", hash_hex)
            logger.debug(f"Waiting for relay of message {hash_hex}...")
            polls += 1
            if await self.client.is_successful(message_hash):
                logger.success("Message relayed successfully")
                return polls

            if not reported_failure and await self.client.is_failed(message_hash):
                logger.warning(
                    f"Message {hash_hex} has a recorded failed execution; "
                    "waiting for a successful relay"
                )
                reported_failure = True

            if timeout is not None and loop.time() - started >= timeout:
                raise create_timeout_error(
                    "monitor_execution",
                    timeout,
                    message=f"Message {hash_hex} not executed after {timeout}s",
                    message_hash=hash_hex,
                )
            await asyncio.sleep(interval)
