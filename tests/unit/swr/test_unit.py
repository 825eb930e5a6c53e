"""Tests for revalidation units and their payloads."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from swrcache.cache import Repository
from swrcache.cache.keys import SwrKeys
from swrcache.errors import ConfigurationError
from swrcache.swr.unit import (
    RevalidationUnit,
    callable_ref,
    check_durations,
    resolve_ref,
    store_value,
)


def build_value() -> str:
    return "rebuilt"


def half_of_ttl(value: object) -> int:
    return 15


class Builders:
    @staticmethod
    def build() -> str:
        return "nested"


def make_unit(keys: SwrKeys, owner: str, **overrides) -> RevalidationUnit:
    fields = {
        "key": "k",
        "ttl": 30,
        "tts": 15,
        "compute": build_value,
        "lock_name": keys.atomic_lock("k"),
        "lock_owner": owner,
        "marker_key": keys.time_to_stale("k"),
    }
    fields.update(overrides)
    return RevalidationUnit(**fields)


class TestCallableRef:
    """Tests for referencing callables by import path."""

    def test_module_function(self) -> None:
        """Module-level functions resolve back to themselves."""
        ref = callable_ref(build_value)

        assert ref == f"{__name__}:build_value"
        assert resolve_ref(ref) is build_value

    def test_nested_attribute(self) -> None:
        """Qualified names walk attributes."""
        ref = callable_ref(Builders.build)

        assert ref.endswith(":Builders.build")
        assert resolve_ref(ref)() == "nested"

    def test_lambda_rejected(self) -> None:
        """Lambdas have no importable name."""
        with pytest.raises(ConfigurationError, match="cannot be queued"):
            callable_ref(lambda: 1)

    def test_local_function_rejected(self) -> None:
        """Functions defined inside functions have no importable name."""

        def local() -> int:
            return 1

        with pytest.raises(ConfigurationError):
            callable_ref(local)

    def test_bound_method_rejected(self) -> None:
        """Bound methods would lose their instance."""
        with pytest.raises(ConfigurationError):
            callable_ref("text".upper)

    def test_invalid_reference(self) -> None:
        """References need both module and name."""
        with pytest.raises(ConfigurationError, match="Invalid callable reference"):
            resolve_ref("no_separator")

    def test_not_callable(self) -> None:
        """References must name something callable."""
        with pytest.raises(ConfigurationError, match="does not name a callable"):
            resolve_ref("swrcache.swr.unit:REVALIDATE_TASK")


class TestStoreValue:
    """Tests for writing entry and marker."""

    def test_check_durations(self, cache: Repository) -> None:
        """Valid durations come back as seconds."""
        assert check_durations(cache, timedelta(seconds=30), 10) == (30, 10)

    @pytest.mark.asyncio
    async def test_entry_written_before_marker(self, cache: Repository, store, keys: SwrKeys) -> None:
        """The entry is written first, then its marker."""
        stored = await store_value(cache, "k", keys.time_to_stale("k"), "v", 30, 15)

        assert stored is True
        assert store.written_keys() == ["k", keys.time_to_stale("k")]

    @pytest.mark.asyncio
    async def test_invalid_resolved_durations(self, cache: Repository, store, keys: SwrKeys) -> None:
        """Nothing is written when the resolved tts is not below ttl."""
        with pytest.raises(ConfigurationError):
            await store_value(cache, "k", keys.time_to_stale("k"), "v", 10, lambda value: 10)

        assert store.puts == []


class TestRevalidationUnit:
    """Tests for RevalidationUnit."""

    @pytest.mark.asyncio
    async def test_run_stores_and_releases(self, cache: Repository, keys: SwrKeys) -> None:
        """A unit holding the claim stores the new value and frees the claim."""
        lock = cache.lock(keys.atomic_lock("k"))
        await lock.acquire()
        unit = make_unit(keys, lock.owner)

        assert await unit.run(cache) is True

        assert await cache.get("k") == "rebuilt"
        assert await cache.has(keys.time_to_stale("k")) is True
        assert await lock.get_current_owner() is None

    @pytest.mark.asyncio
    async def test_run_without_claim_skips(self, cache: Repository, keys: SwrKeys) -> None:
        """A unit whose claim is gone does nothing."""
        unit = make_unit(keys, "stale-owner")

        assert await unit.run(cache) is False
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_run_failure_releases_claim(self, cache: Repository, keys: SwrKeys) -> None:
        """Compute errors propagate after the claim is released."""
        lock = cache.lock(keys.atomic_lock("k"))
        await lock.acquire()

        def boom() -> str:
            raise ValueError("nope")

        unit = make_unit(keys, lock.owner, compute=boom)

        with pytest.raises(ValueError):
            await unit.run(cache)
        assert await lock.get_current_owner() is None

    def test_payload_round_trip(self, keys: SwrKeys) -> None:
        """Payloads rebuild an equivalent unit."""
        at = datetime(2030, 1, 1, tzinfo=timezone.utc)
        unit = make_unit(keys, "owner", ttl=at, tts=half_of_ttl)

        payload = unit.to_payload()
        rebuilt = RevalidationUnit.from_payload(payload)

        assert payload["ttl"] == {"at": at.isoformat()}
        assert payload["tts"] == {"ref": f"{__name__}:half_of_ttl"}
        assert rebuilt == unit

    def test_payload_timedelta(self, keys: SwrKeys) -> None:
        """Timedeltas are stored as seconds."""
        unit = make_unit(keys, "owner", ttl=timedelta(minutes=1))

        assert unit.to_payload()["ttl"] == {"seconds": 60.0}

    def test_payload_rejects_lambda(self, keys: SwrKeys) -> None:
        """Units computing through a lambda cannot be queued."""
        unit = make_unit(keys, "owner", compute=lambda: "v")

        with pytest.raises(ConfigurationError):
            unit.to_payload()
