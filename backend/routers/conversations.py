from typing import List

from fastapi import APIRouter, Depends

from deps import get_current_user, get_query_service
from models.schemas import Conversation, MessageResponse, TitleUpdate
from services.conversations import ConversationQueryService

router = APIRouter(prefix="/api/conversations", tags=["conversations"])

@router.post("", response_model=Conversation)
def create_conversation(
    user_id: str = Depends(get_current_user),
    service: ConversationQueryService = Depends(get_query_service),
):
    return service.create(user_id)

@router.get("", response_model=List[Conversation])
def read_conversations(
    user_id: str = Depends(get_current_user),
    service: ConversationQueryService = Depends(get_query_service),
):
    return service.list(user_id)

@router.get("/search/{query}", response_model=List[Conversation])
def search_conversations(
    query: str,
    user_id: str = Depends(get_current_user),
    service: ConversationQueryService = Depends(get_query_service),
):
    return service.search(user_id, query)

@router.get("/{conversation_id}", response_model=Conversation)
def read_conversation(
    conversation_id: str,
    user_id: str = Depends(get_current_user),
    service: ConversationQueryService = Depends(get_query_service),
):
    return service.get(user_id, conversation_id)

@router.put("/{conversation_id}", response_model=Conversation)
def rename_conversation(
    conversation_id: str,
    data: TitleUpdate,
    user_id: str = Depends(get_current_user),
    service: ConversationQueryService = Depends(get_query_service),
):
    return service.rename(user_id, conversation_id, data.title)

@router.delete("/{conversation_id}", response_model=MessageResponse)
def delete_conversation(
    conversation_id: str,
    user_id: str = Depends(get_current_user),
    service: ConversationQueryService = Depends(get_query_service),
):
    service.delete(user_id, conversation_id)
    return MessageResponse(message="Conversation deleted successfully")
