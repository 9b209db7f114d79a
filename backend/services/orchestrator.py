"""Chat orchestration: resolve the conversation, ask the model, persist the turn.

A turn is all-or-nothing. The model is called before anything is written,
and the user/assistant pair is then stored in one atomic write. There is no
``await`` between the model answering and that write, so a cancelled request
either stores both messages or neither. New conversations are inserted
together with their first pair, which also means a failed first turn leaves
no empty conversation behind.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Union

from errors import NotFoundError, ValidationError
from services.history import ConversationStore, GuestConversationStore
from services.llm import LLMProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthenticatedChat:
    user_id: str
    message: str
    conversation_id: Optional[str] = None


@dataclass(frozen=True)
class GuestChat:
    guest_id: str
    message: str


@dataclass(frozen=True)
class ChatResult:
    answer: str
    conversation_id: Optional[str] = None
    guest_id: Optional[str] = None


def _turn(message: str, answer: str):
    return [
        {"sender": "user", "content": message},
        {"sender": "assistant", "content": answer},
    ]


class ChatOrchestrator:
    def __init__(
        self,
        conversations: ConversationStore,
        guest_conversations: GuestConversationStore,
        llm: LLMProvider,
    ):
        self.conversations = conversations
        self.guest_conversations = guest_conversations
        self.llm = llm

    async def chat(self, request: Union[AuthenticatedChat, GuestChat]) -> ChatResult:
        if not request.message or not request.message.strip():
            raise ValidationError("Message must not be empty", code="EmptyMessage")
        if isinstance(request, GuestChat):
            return await self._chat_as_guest(request)
        return await self._chat_as_user(request)

    async def _chat_as_user(self, request: AuthenticatedChat) -> ChatResult:
        history = []
        if request.conversation_id:
            conv = self.conversations.get_by_id(request.conversation_id, request.user_id)
            if conv is None:
                raise NotFoundError("Conversation not found")
            history = list(conv.messages or [])

        answer = await self.llm.generate(request.message, history)

        if request.conversation_id:
            conv = self.conversations.append_messages(
                request.conversation_id, request.user_id, _turn(request.message, answer)
            )
        else:
            conv = self.conversations.create(request.user_id, _turn(request.message, answer))
        logger.info(f"Stored chat turn in conversation {conv.id} ({len(conv.messages)} messages)")
        return ChatResult(answer=answer, conversation_id=conv.id)

    async def _chat_as_guest(self, request: GuestChat) -> ChatResult:
        if not request.guest_id or not request.guest_id.strip():
            raise ValidationError("guestId is required")

        conv = self.guest_conversations.get_by_guest_id(request.guest_id)
        history = list(conv.messages or []) if conv is not None else []

        answer = await self.llm.generate(request.message, history)

        conv = self.guest_conversations.create_or_append(request.guest_id, _turn(request.message, answer))
        logger.info(f"Stored guest chat turn in conversation {conv.id} ({len(conv.messages)} messages)")
        return ChatResult(answer=answer, guest_id=request.guest_id)
