# src/bot/console_transport.py

"""Transport that prints outbound messages, for one-shot CLI runs."""

import re

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from src.bot.transport import MenuOptions

_TAG_RE = re.compile(r"</?b>")


def _plain(text: str, formatting: str | None) -> str:
    """Drop the bold tags used in HTML chat messages."""
    if formatting == "HTML":
        text = _TAG_RE.sub("", text)
        text = text.replace("&lt;", "<").replace("&gt;", ">")
        text = text.replace("&amp;", "&")
    return text


class ConsoleTransport:
    """Renders each message as a panel titled with its owner."""

    def __init__(self, console: Console | None = None) -> None:
        # Stderr so stdout stays clean for tables
        self.console = console or Console(stderr=True)
        self.sent: list[tuple[int, str]] = []

    async def send(
        self, owner: int, text: str, formatting: str | None = None,
    ) -> None:
        body = _plain(text, formatting)
        self.sent.append((owner, body))
        self.console.print(
            Panel(Text(body), title=f"owner {owner}", expand=False)
        )

    async def send_menu(
        self,
        owner: int,
        text: str,
        options: MenuOptions,
        formatting: str | None = None,
    ) -> None:
        buttons = "\n".join(f"[{label}]" for label, _ in options)
        await self.send(owner, f"{text}\n\n{buttons}", formatting)
