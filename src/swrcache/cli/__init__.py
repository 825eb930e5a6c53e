"""CLI commands for swr-cache.

Provides command-line interface using Typer:
- swrcache worker: Run the offloaded revalidation worker
- swrcache inspect: Show the entry, marker and claim for a key
- swrcache expire: Make an entry stale so the next read revalidates it
- swrcache forget: Drop an entry together with its bookkeeping

Usage:
    swrcache --help
    swrcache worker --queue reports
    swrcache inspect users:count
    swrcache expire users:count
"""

import typer

from swrcache.cli.keys_cmd import expire, forget, inspect
from swrcache.cli.worker_cmd import app as worker_app

# Main CLI application
app = typer.Typer(
    name="swrcache",
    help="swr-cache: stale-while-revalidate caching with single-flight revalidation",
    no_args_is_help=True,
)

# Add subcommands
app.add_typer(worker_app, name="worker")
app.command("inspect")(inspect)
app.command("expire")(expire)
app.command("forget")(forget)


@app.callback()
def callback() -> None:
    """swr-cache: stale-while-revalidate caching with single-flight revalidation."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
