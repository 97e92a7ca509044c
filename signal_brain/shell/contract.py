"""Narrow interface between the pipeline and its outside collaborators.

The executor only talks to the messaging transport through this protocol,
so tests can substitute fakes for the Telegram session.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Protocol

TextHandler = Callable[[str], Awaitable[None]]


class Transport(Protocol):
    async def send_text(self, recipient: str, text: str) -> None:
        """Deliver ``text`` to ``recipient``. Raises TransportError on failure."""
        ...

