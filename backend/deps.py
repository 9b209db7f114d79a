import logging
from functools import lru_cache

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from database import get_db
from services.conversations import ConversationQueryService
from services.history import ConversationStore, GuestConversationStore
from services.identity import IdentityProvider, IdentityVerifier
from services.llm import LLMProvider
from services.orchestrator import ChatOrchestrator
from settings import settings

logger = logging.getLogger(__name__)


@lru_cache()
def get_llm_provider() -> LLMProvider:
    logger.info("Initializing LLMProvider for %s (%s)", settings.get_llm_base_url(), settings.get_llm_model())
    return LLMProvider(
        base_url=settings.get_llm_base_url(),
        api_key=settings.get_llm_api_key(),
        model=settings.get_llm_model(),
        instructions=settings.get_ai_instructions(),
        timeout=settings.get_llm_timeout(),
    )


@lru_cache()
def get_identity_provider() -> IdentityProvider:
    return IdentityProvider(secret=settings.get_jwt_secret(), expires_in=settings.get_jwt_expires_in())


def get_current_user(
    authorization: str | None = Header(default=None),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> str:
    """Resolves the bearer token to a user id or raises AuthError (401)."""
    return IdentityVerifier(identity).verify(authorization)


def get_conversation_store(db: Session = Depends(get_db)) -> ConversationStore:
    return ConversationStore(db, max_attempts=settings.get_append_max_attempts())


def get_guest_conversation_store(db: Session = Depends(get_db)) -> GuestConversationStore:
    return GuestConversationStore(db, max_attempts=settings.get_append_max_attempts())


def get_orchestrator(
    conversations: ConversationStore = Depends(get_conversation_store),
    guest_conversations: GuestConversationStore = Depends(get_guest_conversation_store),
    llm: LLMProvider = Depends(get_llm_provider),
) -> ChatOrchestrator:
    return ChatOrchestrator(conversations, guest_conversations, llm)


def get_query_service(store: ConversationStore = Depends(get_conversation_store)) -> ConversationQueryService:
    return ConversationQueryService(store)
