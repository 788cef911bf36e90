"""
Debounce scheduler holding at most one pending command.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from .models import CoalescePolicy, PendingSlot, VoiceCommand

logger = logging.getLogger(__name__)

LOW_CONFIDENCE_THRESHOLD = 0.7
MAX_SIMPLE_TOKENS = 3
CONJUNCTIONS = (" and ", " then ")

Executor = Callable[[VoiceCommand, Any], Awaitable[bool]]


def is_complex_command(text: str) -> bool:
    """
    Check whether a command looks like a compound instruction.

    Args:
        text: Command text

    Returns:
        True if the text chains instructions or has more than three words
    """
    lowered = (text or "").lower()
    if any(conjunction in lowered for conjunction in CONJUNCTIONS):
        return True
    return len(lowered.split()) > MAX_SIMPLE_TOKENS


class DebounceScheduler:
    """
    Delays commands and coalesces rapid arrivals into one execution.

    While a timer is outstanding a newer command replaces the pending one and
    restarts the timer. When the timer fires, whatever command is in the slot
    at that moment is executed and every waiter is resolved with its result.
    """

    def __init__(
        self,
        execute: Executor,
        coalesce_policy: CoalescePolicy = CoalescePolicy.SHARE_RESULT,
    ):
        """
        Initialize the scheduler.

        Args:
            execute: Coroutine function that runs a command and returns its result
            coalesce_policy: How callers of replaced commands are resolved
        """
        self._execute = execute
        self.coalesce_policy = coalesce_policy
        self._slot: Optional[PendingSlot] = None
        self._timer: Optional[asyncio.Task] = None

    @property
    def is_pending(self) -> bool:
        return self._slot is not None

    @property
    def pending_command(self) -> Optional[VoiceCommand]:
        return self._slot.command if self._slot else None

    def should_debounce(
        self,
        command: VoiceCommand,
        *,
        performance_mode: bool = False,
        adaptive_mode: bool = False,
    ) -> bool:
        """
        Decide whether a command must go through the debounce timer.

        Args:
            command: Incoming command
            performance_mode: Whether performance mode is on
            adaptive_mode: Whether adaptive mode is on

        Returns:
            True if the command should be delayed
        """
        if self.is_pending or performance_mode or adaptive_mode:
            return True

        if command.confidence is not None and command.confidence < LOW_CONFIDENCE_THRESHOLD:
            return True

        return is_complex_command(command.text)

    def schedule(
        self,
        command: VoiceCommand,
        context: Any,
        delay_ms: float,
        now: float,
    ) -> tuple[asyncio.Future, Optional[VoiceCommand]]:
        """
        Put a command in the pending slot and (re)start the timer.

        Args:
            command: Command to delay
            context: Context forwarded to the handlers
            delay_ms: Timer delay in milliseconds
            now: Current time in milliseconds

        Returns:
            Tuple of (future resolved with the execution result, replaced command)
        """
        loop = asyncio.get_running_loop()
        waiter = loop.create_future()

        previous = self._slot
        self._cancel_timer()

        waiters = []
        replaced = None
        if previous is not None:
            replaced = previous.command
            if self.coalesce_policy == CoalescePolicy.SHARE_RESULT:
                waiters.extend(previous.waiters)
            else:
                _resolve_all(previous.waiters, False)
        waiters.append(waiter)

        self._slot = PendingSlot(
            command=command,
            context=context,
            scheduled_at=now,
            waiters=waiters,
        )
        self._timer = asyncio.create_task(self._fire_after(delay_ms / 1000.0))
        return waiter, replaced

    async def _fire_after(self, delay_seconds: float) -> None:
        await asyncio.sleep(delay_seconds)

        slot = self._slot
        self._slot = None
        self._timer = None
        if slot is None:
            return

        try:
            result = await self._execute(slot.command, slot.context)
        except Exception as e:
            logger.error(f"Error executing debounced command: {e}", exc_info=True)
            result = False

        _resolve_all(slot.waiters, result)

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    def cancel(self) -> None:
        """Drop the pending command and resolve its waiters with False."""
        self._cancel_timer()
        slot = self._slot
        self._slot = None
        if slot is not None:
            _resolve_all(slot.waiters, False)


def _resolve_all(waiters: list[asyncio.Future], result: bool) -> None:
    for waiter in waiters:
        if not waiter.done():
            waiter.set_result(result)
