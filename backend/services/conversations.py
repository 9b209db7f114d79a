from typing import List

from errors import NotFoundError, ValidationError
from models.schemas import Conversation
from services.history import ConversationStore


class ConversationQueryService:
    """Conversation management for the signed-in user.

    A conversation owned by someone else is reported exactly like a missing
    one, so callers cannot probe for other users' ids.
    """

    def __init__(self, store: ConversationStore):
        self.store = store

    def create(self, user_id: str) -> Conversation:
        return Conversation.from_db(self.store.create(user_id))

    def list(self, user_id: str) -> List[Conversation]:
        return [Conversation.from_db(c) for c in self.store.list_by_owner(user_id)]

    def get(self, user_id: str, conversation_id: str) -> Conversation:
        conv = self.store.get_by_id(conversation_id, user_id)
        if conv is None:
            raise NotFoundError("Conversation not found")
        return Conversation.from_db(conv)

    def rename(self, user_id: str, conversation_id: str, title: str) -> Conversation:
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title must not be empty")
        conv = self.store.rename(conversation_id, user_id, title)
        if conv is None:
            raise NotFoundError("Conversation not found")
        return Conversation.from_db(conv)

    def delete(self, user_id: str, conversation_id: str) -> None:
        if not self.store.delete(conversation_id, user_id):
            raise NotFoundError("Conversation not found")

    def search(self, user_id: str, query: str) -> List[Conversation]:
        return [Conversation.from_db(c) for c in self.store.search_by_owner(user_id, query)]
