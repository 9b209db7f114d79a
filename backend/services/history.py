"""Persistence for authenticated and guest conversations.

Both stores keep one row per conversation with the message history in a JSON
column. Appends never rewrite a row blindly: each write is an ``UPDATE ...
WHERE version = <version read>`` and is retried when another writer got
there first, so two turns on the same conversation cannot interleave or
drop each other's messages.
"""
import datetime
import logging
from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from errors import NotFoundError, StorageError
from models import db_models

logger = logging.getLogger(__name__)

_TICK = datetime.timedelta(microseconds=1)


def _aware(ts):
    if ts is None:
        return None
    if isinstance(ts, str):
        ts = datetime.datetime.fromisoformat(ts)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=datetime.timezone.utc)
    return ts


def _advance(previous) -> datetime.datetime:
    """Current UTC time, nudged forward so it never precedes ``previous``."""
    now = db_models.utcnow()
    previous = _aware(previous)
    if previous is not None and now <= previous:
        return previous + _TICK
    return now


def _stamp(existing: List[Dict], messages: Iterable[Dict]) -> List[Dict]:
    last = existing[-1]["timestamp"] if existing else None
    stamped = []
    for m in messages:
        ts = _advance(last)
        stamped.append({"sender": m["sender"], "content": m["content"], "timestamp": ts.isoformat()})
        last = ts
    return stamped


def _matches(row, needle: str) -> bool:
    if needle in (row.title or "").casefold():
        return True
    return any(needle in (m.get("content") or "").casefold() for m in row.messages or [])


class _ConversationStore:
    model = None
    owner_field = None

    def __init__(self, db: Session, max_attempts: int = 5):
        self.db = db
        self.max_attempts = max_attempts

    @property
    def _owner_col(self):
        return getattr(self.model, self.owner_field)

    @contextmanager
    def _guard(self, action: str):
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {action}: {e}", exc_info=True)
            raise StorageError(f"Failed to {action}") from e

    def _owned(self, owner):
        return self.db.query(self.model).filter(self._owner_col == owner)

    def _load_for_update(self, conversation_id: str, owner: str):
        return (
            self._owned(owner)
            .filter(self.model.id == conversation_id)
            .populate_existing()
            .first()
        )

    def _insert(self, owner: str, messages: Iterable[Dict] = ()):
        now = db_models.utcnow()
        stamped = _stamp([], messages)
        updated = max(now, _aware(stamped[-1]["timestamp"])) if stamped else now
        row = self.model(
            title=db_models.DEFAULT_TITLE,
            messages=stamped,
            created_at=now,
            updated_at=updated,
            version=0,
        )
        setattr(row, self.owner_field, owner)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def create(self, owner: str, messages: Iterable[Dict] = ()):
        with self._guard("create conversation"):
            row = self._insert(owner, messages)
        logger.info(f"Created {self.model.__tablename__} row {row.id}")
        return row

    def get_by_id(self, conversation_id: str, owner: Optional[str] = None):
        with self._guard("load conversation"):
            q = self.db.query(self.model).filter(self.model.id == conversation_id)
            if owner is not None:
                q = q.filter(self._owner_col == owner)
            return q.first()

    def list_by_owner(self, owner: str):
        with self._guard("list conversations"):
            return self._owned(owner).order_by(self.model.updated_at.desc()).all()

    def search_by_owner(self, owner: str, query: str):
        needle = query.casefold()
        return [row for row in self.list_by_owner(owner) if _matches(row, needle)]

    def rename(self, conversation_id: str, owner: str, title: str):
        with self._guard("rename conversation"):
            row = self._load_for_update(conversation_id, owner)
            if row is None:
                return None
            result = self.db.execute(
                update(self.model)
                .where(self.model.id == conversation_id, self._owner_col == owner)
                .values(
                    title=title,
                    updated_at=_advance(row.updated_at),
                    version=self.model.version + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                # Deleted between the read and the write.
                self.db.rollback()
                return None
            self.db.commit()
            self.db.refresh(row)
            return row

    def delete(self, conversation_id: str, owner: str) -> bool:
        with self._guard("delete conversation"):
            deleted = (
                self._owned(owner)
                .filter(self.model.id == conversation_id)
                .delete(synchronize_session="fetch")
            )
            self.db.commit()
        if deleted:
            logger.info(f"Deleted {self.model.__tablename__} row {conversation_id}")
        return deleted > 0

    def append_messages(self, conversation_id: str, owner: str, messages: Iterable[Dict]):
        """Atomically appends ``messages`` (dicts with sender/content) and bumps updatedAt.

        Timestamps are assigned here, at write time, so they stay
        non-decreasing along the stored sequence.
        """
        messages = list(messages)
        for attempt in range(1, self.max_attempts + 1):
            with self._guard("append messages"):
                row = self._load_for_update(conversation_id, owner)
                if row is None:
                    raise NotFoundError("Conversation not found")
                expected = row.version
                existing = list(row.messages or [])
                stamped = _stamp(existing, messages)
                updated = _advance(row.updated_at)
                if stamped:
                    updated = max(updated, _aware(stamped[-1]["timestamp"]))
                result = self.db.execute(
                    update(self.model)
                    .where(
                        self.model.id == conversation_id,
                        self._owner_col == owner,
                        self.model.version == expected,
                    )
                    .values(
                        messages=existing + stamped,
                        updated_at=updated,
                        version=expected + 1,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 1:
                    self.db.commit()
                    self.db.refresh(row)
                    return row
                self.db.rollback()
            logger.warning(
                f"Conversation {conversation_id} changed during append (attempt {attempt}/{self.max_attempts}), retrying"
            )
        raise StorageError("Conversation is being modified concurrently")


class ConversationStore(_ConversationStore):
    model = db_models.ConversationDB
    owner_field = "user_id"


class GuestConversationStore(_ConversationStore):
    model = db_models.GuestConversationDB
    owner_field = "guest_id"

    def get_by_guest_id(self, guest_id: str):
        with self._guard("load guest conversation"):
            return self._owned(guest_id).first()

    def create_or_append(self, guest_id: str, messages: Iterable[Dict]):
        """Appends to the guest's conversation, creating it with ``messages`` if absent."""
        messages = list(messages)
        existing = self.get_by_guest_id(guest_id)
        if existing is not None:
            return self.append_messages(existing.id, guest_id, messages)
        try:
            row = self._insert(guest_id, messages)
            logger.info(f"Created guest conversation {row.id}")
            return row
        except IntegrityError:
            # Another request created it first; the unique guest_id picked the winner.
            self.db.rollback()
            logger.info("Guest conversation created concurrently, appending to it instead")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create guest conversation: {e}", exc_info=True)
            raise StorageError("Failed to create guest conversation") from e
        winner = self.get_by_guest_id(guest_id)
        if winner is None:
            raise StorageError("Guest conversation vanished during creation")
        return self.append_messages(winner.id, guest_id, messages)
