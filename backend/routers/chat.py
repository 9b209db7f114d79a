from fastapi import APIRouter, Depends

from deps import get_current_user, get_orchestrator
from models.schemas import AuthChatRequest, AuthChatResponse, GuestChatRequest, GuestChatResponse
from services.orchestrator import AuthenticatedChat, ChatOrchestrator, GuestChat

router = APIRouter(prefix="/api/chat", tags=["chat"])

@router.post("/auth", response_model=AuthChatResponse)
async def chat_authenticated(
    request: AuthChatRequest,
    user_id: str = Depends(get_current_user),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    result = await orchestrator.chat(
        AuthenticatedChat(user_id=user_id, message=request.message, conversation_id=request.conversationId)
    )
    return AuthChatResponse(answer=result.answer, conversationId=result.conversation_id)

@router.post("/guest", response_model=GuestChatResponse)
async def chat_guest(request: GuestChatRequest, orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    result = await orchestrator.chat(GuestChat(guest_id=request.guestId, message=request.message))
    return GuestChatResponse(answer=result.answer, guestId=result.guest_id)
