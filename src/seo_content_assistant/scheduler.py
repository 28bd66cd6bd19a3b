"""
Debounced automatic rescoring.

Keeps the score breakdown eventually consistent with the document without
flooding the scoring service:

- Every edit restarts a trailing-edge debounce timer.
- When the timer elapses, exactly one scoring request is issued with the
  document and session as they are at that moment.
- Each request takes a sequence number when it is issued. A response is
  applied only if no newer request has been issued since, so a slow,
  late response can never overwrite a fresher score.

In-flight requests are never cancelled; staleness is decided purely by
issuance order.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from .adapters import NO_SESSION_MESSAGE
from .config import DEFAULT_RESCORE_DELAY
from .errors import AssistantError, PreconditionError, StaleResponseDiscard
from .models import DocumentState

logger = logging.getLogger(__name__)


class DebounceTimer:
    """
    Restartable one-shot timer on the asyncio event loop.

    reset() (re)starts the countdown, cancel() drops a pending one. The
    callback runs on the loop thread once the delay passes without a reset.
    Without a loop to run on, reset() starts nothing and returns False.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], None],
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        if delay <= 0:
            raise ValueError(f"delay must be > 0, got {delay}")
        self.delay = delay
        self._callback = callback
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        """Check if a countdown is running."""
        return self._handle is not None

    def reset(self) -> bool:
        """
        Cancel any pending countdown and start a new one.

        Returns:
            False if there is no event loop to run the countdown on.
        """
        self.cancel()
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.debug("No running event loop; countdown not started")
                return False
        if loop.is_closed():
            logger.debug("Event loop is closed; countdown not started")
            return False
        self._handle = loop.call_later(self.delay, self._fire)
        return True

    def cancel(self) -> None:
        """Cancel the pending countdown, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()


class RescoreScheduler:
    """
    Debounces edit signals into scoring requests and drops stale responses.

    The scheduler does not own any workflow state. It reads the current
    session id and document through providers at issue time and hands
    fresh results and failures back through callbacks.
    """

    def __init__(
        self,
        scorer: Callable[[str, DocumentState], Awaitable[Any]],
        session_id_provider: Callable[[], Optional[str]],
        document_provider: Callable[[], DocumentState],
        on_result: Callable[[str, Any], None],
        on_error: Callable[[AssistantError], None],
        delay: float = DEFAULT_RESCORE_DELAY,
        on_activity: Optional[Callable[[], None]] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            scorer: Coroutine function sending (session_id, document) to the
                scoring service.
            session_id_provider: Returns the active session id, or None.
            document_provider: Returns the current document snapshot.
            on_result: Called with (session_id, response) for every response
                that is still current. May raise StaleResponseDiscard to
                reject it.
            on_error: Called with failures of automatic rescoring that are
                still current.
            delay: Debounce delay in seconds.
            on_activity: Called whenever the in-flight count changes.
            loop: Event loop for the timer; defaults to the running loop.
        """
        self._scorer = scorer
        self._session_id_provider = session_id_provider
        self._document_provider = document_provider
        self._on_result = on_result
        self._on_error = on_error
        self._on_activity = on_activity
        self._timer = DebounceTimer(delay, self._on_timer_elapsed, loop)
        self._issued = 0
        self._in_flight = 0
        self._tasks: set[asyncio.Task] = set()

    @property
    def delay(self) -> float:
        return self._timer.delay

    @property
    def pending(self) -> bool:
        """Check if a debounced rescore is waiting to fire."""
        return self._timer.pending

    @property
    def in_flight(self) -> int:
        """Number of scoring requests awaiting a response."""
        return self._in_flight

    @property
    def latest_sequence(self) -> int:
        """Sequence number of the most recently issued request."""
        return self._issued

    def notify_change(self) -> None:
        """Signal that an observed document field changed."""
        self._timer.reset()

    def cancel(self) -> None:
        """Drop the pending debounced rescore."""
        self._timer.cancel()

    def close(self) -> None:
        """Drop the pending rescore, cancel automatic requests and invalidate the rest."""
        self._timer.cancel()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self.invalidate()

    def invalidate(self) -> None:
        """Treat every request issued so far as stale."""
        self._issued += 1
        logger.debug(f"Scoring responses before #{self._issued} invalidated")

    async def score_now(self) -> Any:
        """
        Issue a scoring request immediately.

        Cancels the pending debounced rescore, since this request already
        reads the latest document.

        Raises:
            PreconditionError: If no session is active.
            StaleResponseDiscard: If a newer request superseded this one.
            OracleError: If the service call fails.
        """
        self._timer.cancel()
        session_id = self._session_id_provider()
        if not session_id:
            raise PreconditionError(NO_SESSION_MESSAGE)
        return await self._issue(session_id, self._document_provider())

    def _on_timer_elapsed(self) -> None:
        session_id = self._session_id_provider()
        if not session_id:
            logger.debug("Debounce elapsed without an active session; nothing to score")
            return

        # Snapshot taken at elapse time, not at signal time
        document = self._document_provider()
        task = asyncio.get_running_loop().create_task(
            self._run_automatic(session_id, document)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_automatic(self, session_id: str, document: DocumentState) -> None:
        try:
            await self._issue(session_id, document)
        except StaleResponseDiscard as e:
            logger.debug(str(e))
        except AssistantError as e:
            logger.warning(f"Automatic rescore failed: {e.message}")
            self._on_error(e)

    async def _issue(self, session_id: str, document: DocumentState) -> Any:
        # Sequence is taken before the first suspension point
        self._issued += 1
        sequence = self._issued
        self._set_in_flight(self._in_flight + 1)
        logger.debug(f"Scoring request #{sequence} issued for session {session_id}")
        try:
            result = await self._scorer(session_id, document)
        except AssistantError as e:
            if sequence != self._issued:
                raise StaleResponseDiscard(
                    "score", f"request #{sequence} superseded by #{self._issued}"
                ) from e
            raise
        finally:
            self._set_in_flight(self._in_flight - 1)

        if sequence != self._issued:
            raise StaleResponseDiscard(
                "score", f"request #{sequence} superseded by #{self._issued}"
            )

        self._on_result(session_id, result)
        return result

    def _set_in_flight(self, count: int) -> None:
        self._in_flight = count
        if self._on_activity is not None:
            self._on_activity()
