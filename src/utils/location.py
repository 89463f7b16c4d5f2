from __future__ import annotations

import asyncio
from typing import Callable, List

from utils.logger import get_logger

_logger = get_logger(__name__)

Listener = Callable[[], None]


class Location:
    """
    The client's address: a fragment string plus back/forward history.

    Listeners are told about fragment changes on the next turn of the running
    event loop, the same way a browser delivers ``hashchange``. Outside of an
    event loop they are called right away.
    """

    def __init__(self, fragment: str = "#/") -> None:
        self._history: List[str] = [fragment]
        self._index = 0
        self._listeners: List[Listener] = []

    @property
    def fragment(self) -> str:
        return self._history[self._index]

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def assign(self, fragment: str) -> None:
        """Move to a new fragment, dropping any forward history."""
        if fragment == self.fragment:
            return
        del self._history[self._index + 1 :]
        self._history.append(fragment)
        self._index += 1
        _logger.debug(f"location -> {fragment}")
        self._notify()

    def back(self) -> bool:
        if self._index == 0:
            return False
        self._index -= 1
        self._notify()
        return True

    def forward(self) -> bool:
        if self._index >= len(self._history) - 1:
            return False
        self._index += 1
        self._notify()
        return True

    def _notify(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        for listener in list(self._listeners):
            if loop is not None:
                loop.call_soon(listener)
            else:
                listener()
