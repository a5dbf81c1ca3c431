"""Rich console rendering of discussion events and markdown export."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from dual_ai_chat.models import DiscussionMode, MessagePurpose, Persona, RunSettings, Speaker, TranscriptEntry

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_SPEAKER_STYLES: dict[Speaker, str] = {
    Speaker.USER: "cyan",
    Speaker.COGNITO: "green",
    Speaker.MUSE: "magenta",
    Speaker.SYSTEM: "yellow",
}

_PURPOSE_LABELS: dict[MessagePurpose, str] = {
    MessagePurpose.USER_INPUT: "question",
    MessagePurpose.SYSTEM_NOTIFICATION: "notice",
    MessagePurpose.OPENING: "opening analysis",
    MessagePurpose.COGNITO_TO_MUSE: "to Muse",
    MessagePurpose.MUSE_TO_COGNITO: "to Cognito",
    MessagePurpose.FINAL_RESPONSE: "final answer",
}


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len] or "conversation"


def print_message(entry: TranscriptEntry) -> None:
    """Print one transcript entry as it is appended."""
    style = _SPEAKER_STYLES[entry.speaker]
    if entry.speaker is Speaker.SYSTEM:
        console.print(Text(entry.text, style=f"bold {style}"))
        return
    subtitle = f"{entry.elapsed_ms / 1000:.1f}s" if entry.elapsed_ms is not None else None
    body = Markdown(entry.text)
    if entry.attachment is not None:
        body = Markdown(f"{entry.text}\n\n*[image: {entry.attachment.filename}]*")
    console.print(
        Panel(
            body,
            title=f"[bold]{entry.speaker.value}[/bold] ({_PURPOSE_LABELS[entry.purpose]})",
            subtitle=subtitle,
            border_style="bold " + style if entry.purpose is MessagePurpose.FINAL_RESPONSE else style,
        )
    )


def print_notepad(content: str, writer: Persona | None) -> None:
    """Print the notepad after a change."""
    title = f"Notepad (updated by {writer.display_name})" if writer else "Notepad"
    console.print(Panel(Markdown(content), title=f"[bold]{title}[/bold]", border_style="blue"))


def print_notice(text: str) -> None:
    console.print(Rule(style="dim"))
    console.print(Text(text, style="dim"))


def export_transcript(
    entries: list[TranscriptEntry],
    notepad_content: str,
    settings: RunSettings,
    model_name: str,
    output_dir: Path,
    slug_override: str | None = None,
) -> Path:
    """Save the current conversation as a markdown file.

    Args:
        entries: Transcript entries in order.
        notepad_content: Notepad text at the time of export.
        settings: Settings the conversation ran with.
        model_name: Display name of the model.
        output_dir: Directory to save the file in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the first question.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    question = next((e.text for e in entries if e.speaker is Speaker.USER), "")
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(question)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    if settings.mode is DiscussionMode.FIXED_TURNS:
        mode_str = f"fixed ({settings.fixed_turns} turns)"
    else:
        mode_str = "ai-driven"

    lines: list[str] = [
        f"# Dual AI Chat: {question[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Model:** {model_name}",
        f"**Mode:** {mode_str}",
        f"**Thinking budget:** {'on' if settings.thinking_budget_enabled else 'off'}",
        "",
        "---",
        "",
    ]

    for entry in entries:
        if entry.speaker is Speaker.SYSTEM:
            lines.append(f"> {entry.text}")
            lines.append("")
            continue
        lines.append(f"### {entry.speaker.value} ({_PURPOSE_LABELS[entry.purpose]})")
        lines.append("")
        lines.append(entry.text)
        if entry.attachment is not None:
            lines.append("")
            lines.append(f"*Attachment: {entry.attachment.filename} ({entry.attachment.mime_type})*")
        if entry.elapsed_ms is not None:
            lines.append("")
            lines.append(f"*Latency: {entry.elapsed_ms / 1000:.2f}s*")
        lines.append("")

    lines += [
        "## Notepad",
        "",
        notepad_content,
        "",
    ]

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Conversation saved to: %s", filepath)
    return filepath
