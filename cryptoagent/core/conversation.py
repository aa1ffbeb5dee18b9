from typing import List, Tuple

from cryptoagent.models.chat import ChatMessage


class ConversationLog:
    """Append-only, ordered record of the messages exchanged in a session."""

    def __init__(self):
        self._messages: List[ChatMessage] = []

    def append(self, message: ChatMessage) -> None:
        self._messages.append(message)

    def entries(self) -> Tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def to_dicts(self) -> List[dict]:
        return [{"text": m.text, "sender": m.sender.value} for m in self._messages]
