"""Conversation state for a single dialogue session."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Literal, Sequence

Role = Literal["user", "assistant"]


@dataclass(frozen=True, slots=True)
class ConversationTurn:
    """One immutable message in the conversation."""

    role: Role
    content: str
    position: int = 0


class Conversation:
    """Append-only ordered sequence of turns."""

    def __init__(self, turns: Iterable[ConversationTurn] = ()) -> None:
        self._turns: list[ConversationTurn] = []
        for turn in turns:
            self.append(turn.role, turn.content)

    def __len__(self) -> int:
        return len(self._turns)

    @property
    def turns(self) -> tuple[ConversationTurn, ...]:
        return tuple(self._turns)

    def append(self, role: Role, content: str) -> ConversationTurn:
        turn = ConversationTurn(role=role, content=content, position=len(self._turns))
        self._turns.append(turn)
        return turn

    def window(self, size: int) -> tuple[ConversationTurn, ...]:
        """Return the most recent ``size`` turns."""

        if size <= 0:
            return ()
        return tuple(self._turns[-size:])


def turns_from_payload(history: Sequence[Any] | None) -> list[ConversationTurn]:
    """Coerce client-supplied ``conversationHistory`` entries into turns.

    Entries with an unknown role or non-string content are skipped.
    """

    turns: list[ConversationTurn] = []
    for entry in history or []:
        if not isinstance(entry, dict):
            continue
        role = entry.get("role")
        content = entry.get("content")
        if role not in ("user", "assistant") or not isinstance(content, str) or not content.strip():
            continue
        turns.append(ConversationTurn(role=role, content=content, position=len(turns)))
    return turns


class TurnStatus(str, Enum):
    """Outcome of a dialogue send attempt."""

    COMPLETED = "completed"
    IGNORED = "ignored"
    AUTH_REQUIRED = "auth_required"


@dataclass(slots=True)
class TurnResult:
    """What the caller renders after a send attempt."""

    status: TurnStatus
    response: str = ""
    followup_question: str | None = None
    suggested_questions: list[str] = field(default_factory=list)
    mentioned_products: list[dict[str, Any]] = field(default_factory=list)
    redirect_to: str | None = None
