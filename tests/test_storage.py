from __future__ import annotations

import json
from datetime import time

import pytest

from conftest import make_profile
from hydrobot.errors import PersistenceError
from hydrobot.models import DailyProgress, UserProfile
from hydrobot.storage import (
    SCHEMA_VERSION,
    HydrationRepository,
    MemoryKeyValueStore,
    SQLKeyValueStore,
    decode_record,
    encode_record,
    list_namespaces,
)

pytestmark = pytest.mark.asyncio


async def test_repository_round_trip():
    store = MemoryKeyValueStore()
    repository = HydrationRepository(store)
    await repository.save_profile(make_profile())
    await repository.save_progress(DailyProgress(date="2026-03-02"))

    profile = await repository.load_profile()
    assert profile.name == "Alex"
    assert profile.bed_time == time(23, 0)
    assert (await repository.load_progress()).date == "2026-03-02"
    assert (await repository.load_history()).entries == {}

    envelope = json.loads(store.data["profile"])
    assert envelope["schema_version"] == SCHEMA_VERSION
    assert envelope["kind"] == "profile"


async def test_missing_keys_load_as_empty():
    repository = HydrationRepository(MemoryKeyValueStore())
    assert await repository.load_profile() is None
    assert await repository.load_progress() is None


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[]",
        json.dumps({"schema_version": 99, "kind": "profile", "data": {}}),
        json.dumps({"schema_version": SCHEMA_VERSION, "kind": "history", "data": {}}),
        json.dumps({"schema_version": SCHEMA_VERSION, "kind": "profile", "data": {"name": "Alex"}}),
    ],
)
async def test_decode_rejects_bad_records(raw):
    with pytest.raises(PersistenceError):
        decode_record(raw, "profile", UserProfile)


async def test_encode_decode_keeps_profile():
    profile = make_profile(weight_kg=81.5)
    assert decode_record(encode_record("profile", profile), "profile", UserProfile) == profile


async def test_sql_store_is_namespaced(session_factory):
    first = SQLKeyValueStore("1", session_factory)
    second = SQLKeyValueStore("2", session_factory)
    await first.set("profile", "a")
    await first.set("profile", "b")
    await second.set("profile", "c")
    await second.set("history", "d")

    assert await first.get("profile") == "b"
    assert await second.get("profile") == "c"
    assert await first.get("history") is None
    assert sorted(await list_namespaces("profile", session_factory)) == ["1", "2"]

    await second.clear()
    assert await second.get("history") is None
    assert await first.get("profile") == "b"
    assert await list_namespaces("profile", session_factory) == ["1"]
