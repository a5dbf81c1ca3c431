"""Click CLI: loads config, wires the orchestrator to the console, runs discussions."""

import asyncio
import logging
import shlex
import signal
import sys
from dataclasses import dataclass
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from config.config_loader import AppConfig, ConfigError, load_config
from dual_ai_chat.attachments import AttachmentError, load_attachment
from dual_ai_chat.gateway import ModelGateway
from dual_ai_chat.healthcheck import run_health_checks
from dual_ai_chat.models import Attachment, DiscussionMode, TranscriptEntry
from dual_ai_chat.orchestrator import DiscussionOrchestrator
from dual_ai_chat.output import console, export_transcript, print_message, print_notepad, print_notice

logger = logging.getLogger(__name__)

_HELP_TEXT = """Commands:
  /clear              reset the conversation and the notepad
  /mode fixed|ai-driven
  /turns N            exchange pairs in fixed mode
  /model ID           switch model (see /models)
  /models             list configured models
  /budget on|off      thinking budget, where the model supports it
  /image PATH         attach an image to the next message
  /notepad            show the notepad
  /save               export the conversation to markdown
  /help               this help
  /quit               leave
Ctrl-C while the AIs are talking stops the discussion."""


@dataclass
class _Session:
    output_dir: Path
    pending_attachment: Attachment | None = None


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _build_orchestrator(config: AppConfig, gateway: ModelGateway) -> DiscussionOrchestrator:
    return DiscussionOrchestrator(
        gateway=gateway,
        prompts=config.prompts,
        defaults=config.defaults,
        on_message=print_message,
        on_notepad_update=print_notepad,
        on_notice=print_notice,
    )


async def _check_model(gateway: ModelGateway, model_id: str) -> None:
    """Ping the selected model. Asks whether to continue if it fails."""
    console.print("\n[bold]Checking model...[/bold]")
    results = await run_health_checks(gateway, [model_id])
    ok, err = results[model_id]
    if ok:
        console.print(f"  [green]OK  [/green] {gateway.display_name(model_id)}\n")
        return
    short_err = err.splitlines()[0][:120] if err else "unknown error"
    console.print(f"  [red]FAIL[/red] {gateway.display_name(model_id)}: {short_err}")
    if not click.confirm("Continue anyway?", default=False):
        sys.exit(0)
    console.print()


async def _run_query(
    orchestrator: DiscussionOrchestrator,
    text: str,
    attachment: Attachment | None = None,
) -> TranscriptEntry | None:
    """Run one discussion with a spinner and a Ctrl-C handler that cancels it."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, orchestrator.cancel)
        handler_installed = True
    except (NotImplementedError, RuntimeError):
        # No loop signal handlers on Windows; Ctrl-C will abort the process instead.
        handler_installed = False

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task("Cognito and Muse are discussing... (Ctrl-C to stop)", total=None)
            final = await orchestrator.send_message(text, attachment)
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)

    console.print(f"[dim]Total time: {orchestrator.elapsed_ms / 1000:.2f}s[/dim]")
    return final


def _print_models(gateway: ModelGateway, current: str) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("ID")
    table.add_column("Model")
    table.add_column("Thinking budget")
    table.add_column("API key")
    for model_id in gateway.model_ids:
        marker = "* " if model_id == current else "  "
        table.add_row(
            marker + model_id,
            gateway.display_name(model_id),
            "yes" if gateway.supports_thinking_budget(model_id) else "-",
            "set" if gateway.has_credentials(model_id) else "[red]missing[/red]",
        )
    console.print(table)


def _path_arg(rest: str) -> str:
    """The raw argument text with one pair of surrounding quotes removed. Backslashes are kept."""
    path = rest.strip()
    if len(path) >= 2 and path[0] == path[-1] and path[0] in "\"'":
        path = path[1:-1]
    return path


def _apply_command(
    orchestrator: DiscussionOrchestrator,
    gateway: ModelGateway,
    session: _Session,
    line: str,
) -> str | None:
    """Handle one slash command. Returns a message to show, or None to quit."""
    command, _, rest = line.strip().partition(" ")
    command = command.lower()
    try:
        args = shlex.split(rest, posix=sys.platform != "win32")
    except ValueError:
        return "Error: unbalanced quotes"

    if command in ("/quit", "/exit"):
        return None
    if command == "/help":
        return _HELP_TEXT
    if command == "/clear":
        orchestrator.clear_conversation()
        session.pending_attachment = None
        return "Conversation cleared."
    if command == "/mode":
        if not args or args[0] not in {m.value for m in DiscussionMode}:
            return "Usage: /mode fixed|ai-driven"
        orchestrator.set_mode(args[0])
        return f"Mode set to {args[0]} (applies to the next message)."
    if command == "/turns":
        if not args or not args[0].isdigit():
            return "Usage: /turns N"
        applied = orchestrator.set_fixed_turns(int(args[0]))
        return f"Fixed turns set to {applied}."
    if command == "/model":
        if not args:
            return "Usage: /model ID"
        try:
            orchestrator.set_model(args[0])
        except ValueError as exc:
            return str(exc)
        return f"Model set to {gateway.display_name(args[0])}."
    if command == "/models":
        _print_models(gateway, orchestrator.settings.model_id)
        return ""
    if command == "/budget":
        if not args or args[0] not in ("on", "off"):
            return "Usage: /budget on|off"
        if not orchestrator.set_thinking_budget(args[0] == "on"):
            return "This model does not support thinking budget settings."
        return f"Thinking budget {args[0]}."
    if command == "/image":
        if not args:
            return "Usage: /image PATH"
        try:
            session.pending_attachment = load_attachment(Path(_path_arg(rest)).expanduser())
        except AttachmentError as exc:
            return f"Error: {exc}"
        return f"Attached {session.pending_attachment.filename} to the next message."
    if command == "/notepad":
        print_notepad(orchestrator.notepad.content, orchestrator.notepad.last_writer)
        return ""
    if command == "/save":
        if not len(orchestrator.transcript):
            return "Nothing to save yet."
        saved = export_transcript(
            orchestrator.transcript.entries,
            orchestrator.notepad.content,
            orchestrator.settings,
            gateway.display_name(orchestrator.settings.model_id),
            session.output_dir,
        )
        return f"Saved to: {saved}"
    return f"Unknown command {command}. Type /help."


async def _interactive(orchestrator: DiscussionOrchestrator, gateway: ModelGateway, session: _Session) -> None:
    console.print("[dim]Type a question, or /help for commands.[/dim]")
    while True:
        try:
            line = (await asyncio.to_thread(console.input, "[bold cyan]> [/bold cyan]")).strip()
        except EOFError:
            return
        if not line:
            continue
        if line.startswith("/"):
            message = _apply_command(orchestrator, gateway, session, line)
            if message is None:
                return
            if message:
                console.print(f"[dim]{message}[/dim]")
            continue
        if orchestrator.credentials_missing:
            console.print("[bold red]Error:[/bold red] API key missing for the current model. Use /model or set it in .env.")
            orchestrator.refresh_credentials()
            continue
        attachment, session.pending_attachment = session.pending_attachment, None
        await _run_query(orchestrator, line, attachment)


@click.command()
@click.argument("question", required=False)
@click.option("--image", "image_path", type=click.Path(exists=True, dir_okay=False), help="Attach an image")
@click.option("--mode", type=click.Choice([m.value for m in DiscussionMode]), default=None,
              help="Discussion mode (default: from config)")
@click.option("--turns", type=int, default=None, help="Exchange pairs in fixed mode (default: from config)")
@click.option("--model", "model_id", default=None, help="Model id from settings.yaml (default: from config)")
@click.option("--no-thinking", is_flag=True, help="Disable the thinking budget for faster answers")
@click.option("--interactive", "-i", "interactive", is_flag=True, help="Keep chatting after the first answer")
@click.option("--output", "output_path", default=None, help="Save the conversation to this directory")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
def main(
    question: str | None,
    image_path: str | None,
    mode: str | None,
    turns: int | None,
    model_id: str | None,
    no_thinking: bool,
    interactive: bool,
    output_path: str | None,
    verbose: bool,
    skip_health_check: bool,
) -> None:
    """Dual AI Chat -- Cognito (logical) and Muse (creative) discuss your question.

    \b
    Examples:
      dual-ai-chat "Is a hot dog a sandwich?"
      dual-ai-chat "Plan a 3-day trip to Kyoto" --mode ai-driven
      dual-ai-chat "What is in this picture?" --image photo.png --model grok-3
      dual-ai-chat --interactive
    """
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except (FileNotFoundError, ConfigError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    gateway = ModelGateway(config.models)
    orchestrator = _build_orchestrator(config, gateway)

    if model_id:
        try:
            orchestrator.set_model(model_id)
        except ValueError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}. Available: {', '.join(gateway.model_ids)}")
            sys.exit(1)
    if mode:
        orchestrator.set_mode(mode)
    if turns is not None:
        orchestrator.set_fixed_turns(turns)
    if no_thinking and not orchestrator.set_thinking_budget(False):
        console.print("[yellow]This model does not support thinking budget settings; ignoring --no-thinking.[/yellow]")

    attachment: Attachment | None = None
    if image_path:
        try:
            attachment = load_attachment(Path(image_path))
        except AttachmentError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            sys.exit(1)

    orchestrator.clear_conversation()

    if orchestrator.credentials_missing and not interactive:
        sys.exit(1)

    session = _Session(
        output_dir=Path(output_path) if output_path else config.defaults.output_dir,
        pending_attachment=attachment,
    )

    if not question and not interactive:
        console.print("[bold red]Error:[/bold red] Provide a QUESTION argument or use --interactive.")
        sys.exit(1)

    async def run() -> TranscriptEntry | None:
        # Health check and discussion share one event loop so the SDK clients cached
        # by the gateway stay bound to a live loop.
        if not skip_health_check and not orchestrator.credentials_missing:
            await _check_model(gateway, orchestrator.settings.model_id)
        final = None
        if question:
            pending, session.pending_attachment = session.pending_attachment, None
            final = await _run_query(orchestrator, question, pending)
        if interactive:
            await _interactive(orchestrator, gateway, session)
        return final

    final = asyncio.run(run())

    if output_path and len(orchestrator.transcript):
        saved = export_transcript(
            orchestrator.transcript.entries,
            orchestrator.notepad.content,
            orchestrator.settings,
            gateway.display_name(orchestrator.settings.model_id),
            session.output_dir,
        )
        console.print(f"\n[dim]Saved to: {saved}[/dim]")

    if question and not interactive and final is None:
        sys.exit(1)


if __name__ == "__main__":
    main()
