"""
Message Log Reconciler

Runs one request/response cycle against the conversation log:

1. Submit    → append the user turn and an empty assistant placeholder
2. Send      → open the streamed request with the finalized history
3. Stream    → decode chunks, overwrite the placeholder with each snapshot
4. Finish    → finalize the placeholder, or write the failure into it

Per-cycle state:
    IDLE → SENDING → STREAMING → FINALIZED | FAILED → IDLE

CRITICAL BOUNDARIES:
- Single-flight: a submission while a cycle is SENDING or STREAMING is
  rejected without touching the log
- No chat failure escapes submit(). The conversation stays usable and the
  state always returns to IDLE
- A cycle that is cancelled mid-way still closes its placeholder, so the
  next submission is accepted
- Updates only ever land on this cycle's placeholder
- A failing UI callback is logged, it never changes the cycle's outcome
"""

from contextlib import aclosing
from typing import Callable, Optional
from uuid import UUID

import structlog

from brisk_insights.audit import AuditLogger, create_correlation_id
from brisk_insights.chat.decoder import IncrementalDecoder
from brisk_insights.chat.errors import (
    GENERIC_ERROR_MESSAGE,
    ChatError,
    NOTIFICATION_MESSAGE,
)
from brisk_insights.chat.transport import ChatTransport
from brisk_insights.config import get_settings
from brisk_insights.models.chat import (
    ChatState,
    ConversationLog,
    ConversationTurn,
)


logger = structlog.get_logger(__name__)

PARTIAL_FAILURE_SEPARATOR = "\n\n"


class ChatReconciler:
    """
    Owns one conversation and drives its request cycles.

    The presentation layer plugs in through plain callbacks:
    - on_update(turn): the placeholder content changed
    - on_error(message, error): show a transient notification
    - on_input_cleared(): empty the input box after a submission is accepted
    - on_state_change(state): the cycle moved to a new state
    """

    def __init__(
        self,
        transport: ChatTransport,
        log: Optional[ConversationLog] = None,
        audit_logger: Optional[AuditLogger] = None,
        output_field: Optional[str] = None,
        on_update: Optional[Callable[[ConversationTurn], None]] = None,
        on_error: Optional[Callable[[str, ChatError], None]] = None,
        on_input_cleared: Optional[Callable[[], None]] = None,
        on_state_change: Optional[Callable[[ChatState], None]] = None,
    ):
        if log is None or output_field is None:
            assistant_settings = get_settings().assistant
            if log is None:
                log = ConversationLog(greeting=assistant_settings.greeting)
            if output_field is None:
                output_field = assistant_settings.output_field

        self._transport = transport
        self._log = log
        self._audit_logger = audit_logger
        self._decoder = IncrementalDecoder(output_field=output_field)
        self._state = ChatState.IDLE
        self._last_outcome: Optional[ChatState] = None

        self.on_update = on_update
        self.on_error = on_error
        self.on_input_cleared = on_input_cleared
        self.on_state_change = on_state_change

    @property
    def log(self) -> ConversationLog:
        return self._log

    @property
    def state(self) -> ChatState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._state in (ChatState.SENDING, ChatState.STREAMING)

    @property
    def last_outcome(self) -> Optional[ChatState]:
        """FINALIZED or FAILED for the last completed cycle."""
        return self._last_outcome

    def _notify(self, callback: Optional[Callable], *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.exception(
                "chat_callback_failed",
                callback=getattr(callback, "__name__", repr(callback)),
                error=str(e),
            )

    def _set_state(self, state: ChatState) -> None:
        self._state = state
        if state in (ChatState.FINALIZED, ChatState.FAILED):
            self._last_outcome = state
        self._notify(self.on_state_change, state)

    async def submit(self, text: str) -> bool:
        """
        Run one full cycle for the user's input.

        Returns:
            False if the input was rejected (blank, or a cycle is in
            flight). True once the cycle has finished, successfully or not.
        """
        content = (text or "").strip()
        if not content:
            return False
        if self._state != ChatState.IDLE:
            logger.info("chat_submit_rejected", state=self._state.value)
            return False

        correlation_id = create_correlation_id()
        self._set_state(ChatState.SENDING)
        turn_id: Optional[UUID] = None

        try:
            self._log.append_user(content)
            turn_id = self._log.append_placeholder().turn_id
            self._notify(self.on_input_cleared)

            history = self._log.history()
            if self._audit_logger:
                await self._audit_logger.log_chat_submitted(
                    turn_id=turn_id,
                    history_length=len(history),
                    correlation_id=correlation_id,
                )

            try:
                await self._run_cycle(turn_id, history, correlation_id)
            except ChatError as e:
                await self._fail(turn_id, e, correlation_id)
            except Exception as e:
                logger.exception("chat_cycle_crashed", error=str(e))
                await self._fail(turn_id, ChatError(str(e)), correlation_id)
        finally:
            if turn_id is not None:
                self._settle(turn_id)
            self._set_state(ChatState.IDLE)

        return True

    def _settle(self, turn_id: UUID) -> None:
        """
        Close a placeholder left open by an interrupted cycle.

        Runs on cancellation too, so it must not await.
        """
        if not self._log.is_tail(turn_id):
            return
        logger.warning("chat_cycle_interrupted", turn_id=str(turn_id))
        self._write_failure(turn_id, GENERIC_ERROR_MESSAGE)
        self._last_outcome = ChatState.FAILED

    def _write_failure(self, turn_id: UUID, message: str) -> None:
        partial = self._log.tail.content
        if partial:
            message = partial + PARTIAL_FAILURE_SEPARATOR + message
        self._apply(turn_id, message)
        self._log.finalize_tail(turn_id)

    async def _run_cycle(
        self,
        turn_id: UUID,
        history: list[dict],
        correlation_id: UUID,
    ) -> None:
        self._decoder.reset()

        async with aclosing(self._transport.stream(history)) as chunks:
            async for chunk in chunks:
                if self._state == ChatState.SENDING:
                    self._set_state(ChatState.STREAMING)
                text = self._decoder.feed(chunk)
                if text is not None:
                    self._apply(turn_id, text)

        final = self._decoder.finish()
        self._apply(turn_id, final)
        self._log.finalize_tail(turn_id)
        self._set_state(ChatState.FINALIZED)

        if self._audit_logger:
            await self._audit_logger.log_chat_completed(
                turn_id=turn_id,
                chunk_count=self._decoder.chunk_count,
                reply_length=len(final),
                correlation_id=correlation_id,
            )

    def _apply(self, turn_id: UUID, text: str) -> None:
        """Overwrite this cycle's placeholder. Anything else is dropped."""
        tail = self._log.tail
        if tail is not None and tail.turn_id == turn_id and tail.content == text:
            return
        if not self._log.replace_tail(turn_id, text):
            logger.warning("chat_update_discarded", turn_id=str(turn_id))
            return
        self._notify(self.on_update, self._log.tail)

    async def _fail(
        self,
        turn_id: UUID,
        error: ChatError,
        correlation_id: UUID,
    ) -> None:
        if not self._log.is_tail(turn_id):
            # The reply was already finalized. Its outcome stands.
            logger.warning(
                "chat_error_after_finish",
                turn_id=str(turn_id),
                error_type=type(error).__name__,
                error=str(error),
            )
            return

        self._write_failure(turn_id, error.user_message)
        self._set_state(ChatState.FAILED)
        logger.warning(
            "chat_cycle_failed",
            error_type=type(error).__name__,
            error=str(error),
        )

        self._notify(self.on_error, NOTIFICATION_MESSAGE, error)

        if self._audit_logger:
            await self._audit_logger.log_chat_failed(
                turn_id=turn_id,
                error_type=type(error).__name__,
                error_message=str(error),
                correlation_id=correlation_id,
            )
