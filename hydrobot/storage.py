from __future__ import annotations

import json
from typing import Optional, Protocol, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import delete, select

from hydrobot.database import get_session
from hydrobot.errors import PersistenceError
from hydrobot.models import DailyProgress, History, KeyValueEntry, UserProfile


SCHEMA_VERSION = 1

PROFILE_KEY = "profile"
PROGRESS_KEY = "progress"
HISTORY_KEY = "history"

RecordT = TypeVar("RecordT", bound=BaseModel)


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def clear(self) -> None: ...


class MemoryKeyValueStore:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def clear(self) -> None:
        self.data.clear()


class SQLKeyValueStore:
    """
    Хранилище ключ-значение поверх таблицы KeyValueEntry.
    Каждый пользователь бота получает собственный namespace (chat id),
    каждая операция выполняется в отдельной сессии.
    """

    def __init__(self, namespace: str, session_factory=None) -> None:
        self.namespace = namespace
        self._session_factory = session_factory or get_session

    async def get(self, key: str) -> Optional[str]:
        try:
            async with self._session_factory() as session:
                entry = await session.get(KeyValueEntry, (self.namespace, key))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to read '{key}'") from exc
        return entry.value if entry else None

    async def set(self, key: str, value: str) -> None:
        try:
            async with self._session_factory() as session:
                entry = await session.get(KeyValueEntry, (self.namespace, key))
                if entry:
                    entry.value = value
                else:
                    entry = KeyValueEntry(namespace=self.namespace, key=key, value=value)
                session.add(entry)
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to write '{key}'") from exc

    async def clear(self) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(delete(KeyValueEntry).where(KeyValueEntry.namespace == self.namespace))
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to clear stored data") from exc


async def list_namespaces(key: str = PROFILE_KEY, session_factory=None) -> list[str]:
    """Возвращает namespace всех пользователей, у которых сохранён ключ key."""
    factory = session_factory or get_session
    try:
        async with factory() as session:
            result = await session.exec(select(KeyValueEntry.namespace).where(KeyValueEntry.key == key))
            return list(result.all())
    except SQLAlchemyError as exc:
        raise PersistenceError("Failed to list users") from exc


def encode_record(kind: str, record: BaseModel) -> str:
    envelope = {
        "schema_version": SCHEMA_VERSION,
        "kind": kind,
        "data": record.model_dump(mode="json"),
    }
    return json.dumps(envelope, ensure_ascii=False)


def decode_record(raw: str, kind: str, model: type[RecordT]) -> RecordT:
    try:
        envelope = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise PersistenceError(f"Stored '{kind}' is not valid JSON") from exc
    if not isinstance(envelope, dict):
        raise PersistenceError(f"Stored '{kind}' has unexpected shape")
    if envelope.get("schema_version") != SCHEMA_VERSION:
        raise PersistenceError(
            f"Stored '{kind}' has schema version {envelope.get('schema_version')}, expected {SCHEMA_VERSION}"
        )
    if envelope.get("kind") != kind:
        raise PersistenceError(f"Expected '{kind}' record, got '{envelope.get('kind')}'")
    try:
        return model.model_validate(envelope.get("data"))
    except PydanticValidationError as exc:
        raise PersistenceError(f"Stored '{kind}' failed validation") from exc


class HydrationRepository:
    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    async def _load(self, key: str, model: type[RecordT]) -> Optional[RecordT]:
        raw = await self.store.get(key)
        if raw is None:
            return None
        return decode_record(raw, key, model)

    async def load_profile(self) -> Optional[UserProfile]:
        return await self._load(PROFILE_KEY, UserProfile)

    async def load_progress(self) -> Optional[DailyProgress]:
        return await self._load(PROGRESS_KEY, DailyProgress)

    async def load_history(self) -> History:
        return await self._load(HISTORY_KEY, History) or History()

    async def save_profile(self, profile: UserProfile) -> None:
        await self.store.set(PROFILE_KEY, encode_record(PROFILE_KEY, profile))

    async def save_progress(self, progress: DailyProgress) -> None:
        await self.store.set(PROGRESS_KEY, encode_record(PROGRESS_KEY, progress))

    async def save_history(self, history: History) -> None:
        await self.store.set(HISTORY_KEY, encode_record(HISTORY_KEY, history))

    async def clear(self) -> None:
        await self.store.clear()
