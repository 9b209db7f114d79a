from sqlalchemy import Column, String, JSON, DateTime, Integer
import uuid
import datetime
from database import Base

DEFAULT_TITLE = "New Conversation"


def utcnow():
    return datetime.datetime.now(datetime.timezone.utc)


class ConversationDB(Base):
    __tablename__ = "conversations"

    id = Column(String, primary_key=True, default=lambda: uuid.uuid4().hex)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False, default=DEFAULT_TITLE)
    messages = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    # Bumped on every write; appends are guarded by a compare-and-set on it.
    version = Column(Integer, nullable=False, default=0)


class GuestConversationDB(Base):
    __tablename__ = "guest_conversations"

    id = Column(String, primary_key=True, default=lambda: uuid.uuid4().hex)
    guest_id = Column(String, unique=True, index=True, nullable=False)
    title = Column(String, nullable=False, default=DEFAULT_TITLE)
    messages = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    version = Column(Integer, nullable=False, default=0)


class UserDB(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: uuid.uuid4().hex)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
