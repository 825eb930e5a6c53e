"""CLI commands for inspecting and invalidating cached entries.

Usage:
    swrcache inspect users:count
    swrcache expire users:count
    swrcache forget users:count
"""

from __future__ import annotations

import asyncio

import typer

from swrcache.cache.keys import SwrKeys
from swrcache.cache.redis import RedisStore, close_redis, get_redis
from swrcache.cache.repository import Repository
from swrcache.swr.freshness import FreshnessTracker


async def _open_cache() -> Repository:
    """Cache facade over the configured Redis instance."""
    return Repository(RedisStore(await get_redis()))


def inspect(
    key: str = typer.Argument(..., help="Cache key to inspect"),
) -> None:
    """Show whether the entry, its staleness marker and its claim exist."""
    state = asyncio.run(_inspect(key))

    typer.echo(f"Key: {key}")
    typer.echo(f"  Entry: {'present' if state['entry'] else 'missing'}")
    typer.echo(f"  Fresh: {'yes' if state['fresh'] else 'no'}")
    claim_owner = state["claim_owner"]
    typer.echo(f"  Claim: {claim_owner if claim_owner else 'free'}")


async def _inspect(key: str) -> dict[str, object]:
    cache = await _open_cache()
    keys = SwrKeys()
    try:
        return {
            "entry": await cache.has(key),
            "fresh": await FreshnessTracker(cache, keys).is_fresh(key),
            "claim_owner": await cache.lock(keys.atomic_lock(key)).get_current_owner(),
        }
    finally:
        await close_redis()


def expire(
    key: str = typer.Argument(..., help="Cache key to mark stale"),
) -> None:
    """Drop the staleness marker so the next read revalidates the entry."""
    dropped = asyncio.run(_expire(key))

    if dropped:
        typer.echo(f"Marked stale: {key}")
    else:
        typer.echo(f"Already stale or missing: {key}")


async def _expire(key: str) -> bool:
    cache = await _open_cache()
    try:
        return await FreshnessTracker(cache).mark_stale(key)
    finally:
        await close_redis()


def forget(
    key: str = typer.Argument(..., help="Cache key to drop"),
) -> None:
    """Drop the entry and its marker, and free any revalidation claim."""
    asyncio.run(_forget(key))
    typer.echo(f"Forgotten: {key}")


async def _forget(key: str) -> None:
    cache = await _open_cache()
    keys = SwrKeys()
    try:
        await cache.forget(key)
        await cache.forget(keys.time_to_stale(key))
        await cache.lock(keys.atomic_lock(key)).force_release()
    finally:
        await close_redis()
