"""CLI entry point using Click.

``termlens explain`` reads piped output from stdin and streams a
diagnosis; ``termlens chat`` asks a question about that output.

    make 2>&1 | termlens explain -c make -e 2
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Callable
from dataclasses import dataclass

import click
from rich.console import Console
from rich.table import Table

from termlens import __version__
from termlens.config import load_config
from termlens.errors import TermlensError
from termlens.providers.registry import build_default_registry
from termlens.session import TerminalSession
from termlens.streaming.handler import StreamHandler
from termlens.streaming.pump import StreamHandle
from termlens.types.messages import ChatMessage, Role
from termlens.types.terminal import UNKNOWN_EXIT_CODE
from termlens.utils.logger import configure_default_logging, setup_logging

err_console = Console(stderr=True)


@dataclass
class CliOptions:
    config_path: str | None = None
    provider: str | None = None
    model: str | None = None
    timeout: float | None = None
    debug: bool = False


@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None,
              help="Config file (default: ~/.termlens/config.json or .yaml)")
@click.option("--provider", help="LLM provider (openrouter, openai, copilot, anthropic, google)")
@click.option("--model", "-m", help="Model override for this call")
@click.option("--timeout", type=float, help="Request timeout in seconds")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.version_option(__version__, prog_name="termlens")
@click.pass_context
def main(
    ctx: click.Context,
    config_path: str | None,
    provider: str | None,
    model: str | None,
    timeout: float | None,
    debug: bool,
) -> None:
    """termlens - ask an LLM about your terminal output."""
    ctx.obj = CliOptions(config_path, provider, model, timeout, debug)


@main.command()
@click.option("--command", "-c", "last_command", default="", help="Command that produced the output")
@click.option("--exit-code", "-e", type=int, default=UNKNOWN_EXIT_CODE, help="Its exit code")
@click.option("--cwd", default=None, help="Working directory of the command")
@click.pass_obj
def explain(opts: CliOptions, last_command: str, exit_code: int, cwd: str | None) -> None:
    """Explain piped terminal output."""
    session = _build_session(opts)
    _capture_stdin(session)
    session.record_command(last_command, exit_code, cwd)
    sys.exit(asyncio.run(_stream(session, lambda: session.explain(timeout=opts.timeout))))


@main.command()
@click.argument("question", nargs=-1, required=True)
@click.pass_obj
def chat(opts: CliOptions, question: tuple[str, ...]) -> None:
    """Ask a question, with piped output (if any) as context."""
    session = _build_session(opts)
    if not sys.stdin.isatty():
        _capture_stdin(session)
    history = [ChatMessage(Role.USER, " ".join(question))]
    sys.exit(asyncio.run(_stream(session, lambda: session.chat(history, timeout=opts.timeout))))


@main.command("providers")
def list_providers() -> None:
    """List supported providers."""
    configure_default_logging()
    table = Table(title="Providers")
    table.add_column("Type")
    table.add_column("Name")
    table.add_column("Auth")
    table.add_column("Description")
    for info in build_default_registry().list_providers():
        table.add_row(str(info.type), info.name, info.auth_method, info.description)
    Console().print(table)


def _build_session(opts: CliOptions) -> TerminalSession:
    overrides: dict[str, str] = {}
    if opts.provider:
        overrides["llm_provider"] = opts.provider
    try:
        config = load_config(opts.config_path, overrides=overrides)
        if opts.model:
            config.provider_settings().model = opts.model
        config.validate()
        setup_logging(
            level="debug" if opts.debug else config.log_level,
            fmt=config.log_format,
            log_file=config.log_file,
        )
        provider = build_default_registry().create_from_config(config)
    except TermlensError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    return TerminalSession.from_config(provider, config)


def _capture_stdin(session: TerminalSession) -> None:
    stream = click.get_binary_stream("stdin")
    while chunk := stream.read(64 * 1024):
        session.feed(chunk)
    session.flush()


async def _stream(session: TerminalSession, start: Callable[[], StreamHandle]) -> int:
    try:
        handle = start()
    except TermlensError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        await session.provider.close()
        return 1

    try:
        result = await StreamHandler().collect(
            handle, on_delta=lambda text: click.echo(text, nl=False),
        )
    finally:
        await handle.aclose()
        await session.provider.close()

    click.echo()
    if result.error is not None:
        err_console.print(f"[red]Error:[/red] {result.error}")
        return 1
    return 0
