"""CLI command for running the revalidation worker.

Usage:
    swrcache worker
    swrcache worker --queue reports
    swrcache worker --once
"""

from __future__ import annotations

import asyncio

import typer

from swrcache.config import settings
from swrcache.observability.logging import configure_logging

app = typer.Typer(help="Run the offloaded revalidation worker")


@app.callback(invoke_without_command=True)
def worker(
    queue: str = typer.Option(
        None,
        "--queue",
        "-q",
        help="Queue to consume (defaults to SWR_DEFAULT_QUEUE)",
    ),
    once: bool = typer.Option(
        False,
        "--once",
        help="Process one batch of jobs and exit",
    ),
    log_level: str = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log level: debug, info, warning, error",
    ),
) -> None:
    """Run the revalidation worker against Redis.

    Executes swr.revalidate jobs handed off by swr(..., queue=...).
    """
    configure_logging(
        json_format=settings.log_json,
        level=(log_level or settings.log_level).upper(),
    )

    queue_name = queue or settings.default_queue
    typer.echo(f"Starting swr-cache worker on queue '{queue_name}'...")

    processed = asyncio.run(_run_worker(queue_name, once))
    if once:
        typer.echo(f"Processed {processed} job(s)")


async def _run_worker(queue_name: str, once: bool) -> int:
    """Async implementation of the worker command."""
    from swrcache.cache.redis import RedisStore, close_redis, get_redis
    from swrcache.cache.repository import Repository
    from swrcache.jobs import JobWorker, RedisJobQueue, WorkerConfig
    from swrcache.jobs.tasks import register_all_handlers

    client = await get_redis()
    job_worker = JobWorker(RedisJobQueue(), WorkerConfig(queue=queue_name))
    register_all_handlers(job_worker, Repository(RedisStore(client)))

    try:
        if once:
            return await job_worker.run_once()
        await job_worker.run()
        return 0
    finally:
        await close_redis()
