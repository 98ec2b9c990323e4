# src/bot/transport.py

"""Outbound chat primitives the engine depends on."""

from typing import Protocol

# (button label, selection key) pairs shown under a menu message
MenuOptions = list[tuple[str, str]]


class Transport(Protocol):
    """Anything that can deliver text to an owner's chat."""

    async def send(
        self, owner: int, text: str, formatting: str | None = None,
    ) -> None:
        """Deliver *text* to *owner*, optionally as ``HTML``."""
        ...

    async def send_menu(
        self,
        owner: int,
        text: str,
        options: MenuOptions,
        formatting: str | None = None,
    ) -> None:
        """Deliver *text* with one selectable button per option."""
        ...
