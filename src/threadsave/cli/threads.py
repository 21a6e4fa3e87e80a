"""Checkpoint CLI commands: ls, show, delete, cleanup."""

from __future__ import annotations

from typing import Annotated

import typer

from threadsave.cli._config import load_config, resolve_db
from threadsave.cli._db import collect, open_saver, run_async
from threadsave.cli._format import (
    DEFAULT_LIMIT,
    describe_value,
    format_namespace,
    format_step,
    print_ctas,
    print_json,
    print_lines,
    print_table,
    truncate_value,
)
from threadsave.exceptions import CleanupError
from threadsave.types import CheckpointConfig, CheckpointTuple

# Common options
DbOption = Annotated[str | None, typer.Option("--db", help="Database path (default: [tool.threadsave].db or ./checkpoints.db)")]
NsOption = Annotated[str | None, typer.Option("--ns", help="Checkpoint namespace")]
JsonFlag = Annotated[bool, typer.Option("--json", help="Output as JSON")]
OutputOption = Annotated[str | None, typer.Option("--output", help="Write JSON to file")]
LimitOption = Annotated[int, typer.Option("--limit", help="Max results")]


def _saver_or_exit(db: str | None, **kwargs):
    path = resolve_db(db)
    try:
        return open_saver(path, **kwargs)
    except FileNotFoundError:
        print(f"Error: Database '{path}' not found.")
        raise typer.Exit(1) from None


def register_commands(app: typer.Typer) -> None:
    """Register checkpoint commands as top-level commands on the app."""

    @app.command("ls")
    def ls_cmd(
        db: DbOption = None,
        thread: Annotated[str | None, typer.Option("--thread", help="Only this thread")] = None,
        ns: NsOption = None,
        source: Annotated[str | None, typer.Option("--source", help="Filter by metadata source")] = None,
        step: Annotated[int | None, typer.Option("--step", help="Filter by metadata step")] = None,
        before: Annotated[str | None, typer.Option("--before", help="Only checkpoints with a lower id")] = None,
        limit: LimitOption = DEFAULT_LIMIT,
        as_json: JsonFlag = False,
        output: OutputOption = None,
    ):
        """List checkpoints, newest first."""
        saver = _saver_or_exit(db)
        config = CheckpointConfig(thread_id=thread or "", checkpoint_ns=ns) if (thread or ns is not None) else None
        before_config = CheckpointConfig(thread_id=thread or "", checkpoint_id=before) if before else None

        async def _list() -> list[CheckpointTuple]:
            async with saver:
                return await collect(saver.list(config, filter={"source": source, "step": step}, before=before_config, limit=limit))

        tuples = run_async(_list())

        if as_json:
            print_json("ls", [t.to_dict() for t in tuples], output)
            return

        if not tuples:
            print("No checkpoints found matching filters.")
            return

        print(f"\nCheckpoints ({len(tuples)} shown)\n")
        headers = ["Thread", "NS", "Checkpoint", "Parent", "Source", "Step", "Writes"]
        rows = [
            [
                t.config.thread_id,
                format_namespace(t.config.checkpoint_ns),
                t.config.checkpoint_id or "—",
                t.parent_config.checkpoint_id if t.parent_config else "—",
                str(t.metadata.get("source", "—")) if isinstance(t.metadata, dict) else "—",
                format_step(t.metadata.get("step")) if isinstance(t.metadata, dict) else "—",
                str(len(t.pending_writes)),
            ]
            for t in tuples
        ]
        print_lines(print_table(headers, rows))

        last = tuples[-1].config
        print_ctas(
            [
                f"threadsave show {last.thread_id} --checkpoint <id>   to inspect a checkpoint",
                f"threadsave ls --thread {last.thread_id} --before {last.checkpoint_id}   for the next page",
            ]
        )

    @app.command("show")
    def show_cmd(
        thread_id: Annotated[str, typer.Argument(help="Thread ID")],
        db: DbOption = None,
        ns: NsOption = None,
        checkpoint: Annotated[str | None, typer.Option("--checkpoint", help="Checkpoint ID (default: latest)")] = None,
        show_values: Annotated[bool, typer.Option("--values", help="Show channel and write values")] = False,
        as_json: JsonFlag = False,
        output: OutputOption = None,
    ):
        """Show a checkpoint with its pending writes and sends."""
        saver = _saver_or_exit(db)
        config = CheckpointConfig(thread_id=thread_id, checkpoint_ns=ns, checkpoint_id=checkpoint)

        async def _get() -> CheckpointTuple | None:
            async with saver:
                return await saver.get_tuple(config)

        found = run_async(_get())
        if found is None:
            target = f"Checkpoint '{checkpoint}'" if checkpoint else "No checkpoint"
            print(f"Error: {target} not found for thread '{thread_id}'.")
            raise typer.Exit(1)

        if as_json:
            print_json("show", found.to_dict(), output)
            return

        _print_tuple(found, show_values)
        ctas = [f"threadsave ls --thread {thread_id}   for this thread's history"]
        if found.parent_config is not None:
            ctas.insert(0, f"threadsave show {thread_id} --checkpoint {found.parent_config.checkpoint_id}   for the parent")
        print_ctas(ctas)

    @app.command("delete")
    def delete_cmd(
        thread_id: Annotated[str, typer.Argument(help="Thread ID to delete")],
        db: DbOption = None,
        yes: Annotated[bool, typer.Option("--yes", "-y", help="Don't ask for confirmation")] = False,
    ):
        """Delete every checkpoint and write for a thread."""
        saver = _saver_or_exit(db)
        if not yes:
            typer.confirm(f"Delete all checkpoints for thread '{thread_id}'?", abort=True)

        async def _delete() -> None:
            async with saver:
                await saver.delete_thread(thread_id)

        run_async(_delete())
        print(f"Deleted thread '{thread_id}'.")

    @app.command("cleanup")
    def cleanup_cmd(
        db: DbOption = None,
        days: Annotated[int | None, typer.Option("--days", help="Retention window in days")] = None,
        as_json: JsonFlag = False,
        output: OutputOption = None,
    ):
        """Delete checkpoints and writes older than the retention window."""
        if days is None:
            days = load_config().retention_days
        try:
            saver = _saver_or_exit(db, retention_days=days)
        except (TypeError, ValueError) as e:
            print(f"Error: {e}")
            raise typer.Exit(1) from e

        async def _cleanup():
            async with saver:
                return await saver.cleanup()

        try:
            result = run_async(_cleanup())
        except CleanupError as e:
            print(f"Error: {e}")
            raise typer.Exit(1) from e

        if as_json:
            print_json("cleanup", {"retention_days": saver.retention.days, **result.to_dict()}, output)
            return
        print(
            f"Deleted {result.deleted_checkpoints} checkpoints and {result.deleted_writes} writes "
            f"older than {saver.retention.days} days."
        )


def _print_tuple(t: CheckpointTuple, show_values: bool) -> None:
    """Print one checkpoint tuple."""
    cfg = t.config
    print(f"\nCheckpoint {cfg.checkpoint_id} | thread {cfg.thread_id} | ns {format_namespace(cfg.checkpoint_ns)}")
    print(f"  parent: {t.parent_config.checkpoint_id if t.parent_config else '—'}")
    print(f"  metadata: {truncate_value(t.metadata)}")

    channel_values = t.checkpoint.get("channel_values", {}) if isinstance(t.checkpoint, dict) else {}
    if channel_values:
        print("  channel_values:")
        for name, value in channel_values.items():
            if show_values:
                print(f"    {name}: {truncate_value(value)}")
            else:
                type_str, size_str = describe_value(value)
                print(f"    {name}: <{type_str}, {size_str}>")

    if t.pending_writes:
        print(f"\n  Pending writes ({len(t.pending_writes)})\n")
        headers = ["Task", "Channel", "Value"]
        rows = []
        for task_id, channel, value in t.pending_writes:
            if show_values:
                shown = truncate_value(value, max_chars=60)
            else:
                type_str, size_str = describe_value(value)
                shown = f"<{type_str}, {size_str}>"
            rows.append([task_id, channel, shown])
        print_lines(print_table(headers, rows, indent=4))

    if t.pending_sends:
        print(f"\n  Pending sends: {len(t.pending_sends)}")
