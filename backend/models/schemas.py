import datetime
from pydantic import AfterValidator, BaseModel
from typing import Annotated, List, Optional, Literal


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    # SQLite hands back naive datetimes; everything we store is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


UtcDatetime = Annotated[datetime.datetime, AfterValidator(_as_utc)]


class Message(BaseModel):
    sender: Literal["user", "assistant"]
    content: str
    timestamp: UtcDatetime


class Conversation(BaseModel):
    id: str
    title: str
    messages: List[Message] = []
    createdAt: UtcDatetime
    updatedAt: UtcDatetime

    @classmethod
    def from_db(cls, row) -> "Conversation":
        return cls(
            id=row.id,
            title=row.title,
            messages=row.messages or [],
            createdAt=row.created_at,
            updatedAt=row.updated_at,
        )


# --- Chat ---

class AuthChatRequest(BaseModel):
    message: str
    conversationId: Optional[str] = None

class AuthChatResponse(BaseModel):
    answer: str
    conversationId: str

class GuestChatRequest(BaseModel):
    message: str
    guestId: str

class GuestChatResponse(BaseModel):
    answer: str
    guestId: str


# --- Conversations ---

class TitleUpdate(BaseModel):
    title: str

class MessageResponse(BaseModel):
    message: str


# --- Auth ---

class Credentials(BaseModel):
    email: str
    password: str

class TokenResponse(BaseModel):
    token: str

class EmailExistsResponse(BaseModel):
    exists: bool

class PasswordReset(BaseModel):
    email: str
    newPassword: str
