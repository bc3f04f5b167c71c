"""Follow-up conversation history kept by the display layer."""
from dataclasses import dataclass, field
from typing import Literal

Role = Literal["user", "assistant"]


@dataclass
class ChatTurn:
    role: Role
    text: str = ""
    frozen: bool = False

    def append(self, fragment: str) -> None:
        if self.frozen:
            raise RuntimeError("cannot append to a finished turn")
        self.text += fragment

    def freeze(self) -> None:
        self.frozen = True


@dataclass
class ChatTranscript:
    """Ordered turns; only the newest assistant turn is ever still growing."""

    turns: list[ChatTurn] = field(default_factory=list)

    def add_user(self, text: str) -> ChatTurn:
        turn = ChatTurn(role="user", text=text, frozen=True)
        self.turns.append(turn)
        return turn

    def begin_assistant(self) -> ChatTurn:
        turn = ChatTurn(role="assistant")
        self.turns.append(turn)
        return turn

    def __len__(self) -> int:
        return len(self.turns)
