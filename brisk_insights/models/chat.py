"""
Conversation Models for the Assistant Chat

The conversation is an append-only, ordered list of turns. Only the
last assistant turn may change, and only while its response is being
streamed in. Everything before it is frozen.

DESIGN DECISION: The log enforces its own invariants and raises
ConversationStateError on misuse. The reconciler is the only writer,
so a raise here means a bug, not bad user input.
"""

from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class Role(str, Enum):
    """Who authored a turn."""
    USER = "user"
    ASSISTANT = "assistant"


class ChatState(str, Enum):
    """
    Per-cycle request state.

    IDLE -> SENDING -> STREAMING -> FINALIZED | FAILED -> IDLE
    """
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    FINALIZED = "finalized"
    FAILED = "failed"


class ConversationStateError(Exception):
    """An operation would break the conversation log invariants."""
    pass


class ConversationTurn(BaseModel):
    """One message in the conversation."""

    turn_id: UUID = Field(default_factory=uuid4)
    role: Role
    content: str = ""
    finalized: bool = Field(
        default=True,
        description="False only for the assistant turn currently streaming"
    )

    def to_wire(self) -> dict:
        """Shape sent to the chat endpoint."""
        return {"role": self.role.value, "content": self.content}


class ConversationLog:
    """
    Ordered conversation owned by one chat session.

    Invariants:
    - at most one turn (the tail) is in flight
    - a user turn is followed by exactly one assistant turn before the
      next user turn is appended
    """

    def __init__(self, greeting: Optional[str] = None):
        self._turns: list[ConversationTurn] = []
        if greeting:
            self._turns.append(
                ConversationTurn(role=Role.ASSISTANT, content=greeting)
            )

    def __len__(self) -> int:
        return len(self._turns)

    @property
    def turns(self) -> tuple[ConversationTurn, ...]:
        """
        Snapshot of the turns.

        Copies: changing one does not change the log. Only replace_tail()
        and finalize_tail() write to it.
        """
        return tuple(turn.model_copy() for turn in self._turns)

    @property
    def tail(self) -> Optional[ConversationTurn]:
        """Copy of the last turn."""
        return self._turns[-1].model_copy() if self._turns else None

    @property
    def has_in_flight(self) -> bool:
        tail = self.tail
        return tail is not None and not tail.finalized

    def append_user(self, content: str) -> ConversationTurn:
        if self.has_in_flight:
            raise ConversationStateError("An assistant turn is still in flight")
        tail = self.tail
        if tail is not None and tail.role == Role.USER:
            raise ConversationStateError(
                "A user turn must be answered before the next one"
            )
        turn = ConversationTurn(role=Role.USER, content=content)
        self._turns.append(turn)
        return turn.model_copy()

    def append_placeholder(self) -> ConversationTurn:
        """Append the empty, mutable assistant turn for the current cycle."""
        tail = self.tail
        if tail is None or tail.role != Role.USER:
            raise ConversationStateError(
                "A placeholder can only follow a user turn"
            )
        turn = ConversationTurn(role=Role.ASSISTANT, content="", finalized=False)
        self._turns.append(turn)
        return turn.model_copy()

    def is_tail(self, turn_id: UUID) -> bool:
        tail = self.tail
        return tail is not None and tail.turn_id == turn_id and not tail.finalized

    def replace_tail(self, turn_id: UUID, content: str) -> bool:
        """
        Overwrite the in-flight tail's content.

        Returns False (and changes nothing) if the tail is not the given
        in-flight turn.
        """
        if not self.is_tail(turn_id):
            return False
        self._turns[-1].content = content
        return True

    def finalize_tail(self, turn_id: UUID) -> bool:
        if not self.is_tail(turn_id):
            return False
        self._turns[-1].finalized = True
        return True

    def history(self) -> list[dict]:
        """
        Turns to send with a request.

        The in-flight placeholder is excluded.
        """
        return [turn.to_wire() for turn in self._turns if turn.finalized]
