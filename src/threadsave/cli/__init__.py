"""Threadsave CLI: inspect and prune checkpoint databases.

Entry point for the `threadsave` command. Requires ``pip install threadsave[cli]``.

Commands:
    ls        List checkpoints, newest first, with metadata filters
    show      Show one checkpoint with its pending writes and sends
    delete    Delete every checkpoint and write for a thread
    cleanup   Remove rows older than the retention window
"""

from __future__ import annotations


def _require_typer():
    """Check that typer is available."""
    try:
        import typer  # noqa: F401
    except ImportError:
        import sys

        print("Error: typer is required for the CLI. Install with: pip install threadsave[cli]", file=sys.stderr)
        raise SystemExit(1) from None


def create_app():
    """Create the Typer app with all commands."""
    _require_typer()

    import typer

    from threadsave.cli.threads import register_commands

    app = typer.Typer(
        name="threadsave",
        help="Checkpoint database inspection and maintenance CLI.",
        no_args_is_help=True,
    )
    register_commands(app)

    return app


def main():
    """CLI entry point."""
    app = create_app()
    app()
