from __future__ import annotations

from typing import Callable, List

from utils.location import Location
from utils.logger import get_logger
from utils.routes import Route, decode

_logger = get_logger(__name__)

RouteCallback = Callable[[Route], None]


class RouteObserver:
    """
    Tracks the current Route of a Location.

    The current route starts as the decoded initial fragment and is recomputed
    on every fragment change. Subscribers only hear about actual changes.
    """

    def __init__(self, location: Location) -> None:
        self._location = location
        self._subscribers: List[RouteCallback] = []
        self.current: Route = decode(location.fragment)
        self._remove_listener = location.add_listener(self.resolve)

    def subscribe(self, callback: RouteCallback) -> Callable[[], None]:
        """
        Register for route changes and resolve once right away, so a fragment
        change between construction and subscription is not missed.
        """
        self._subscribers.append(callback)
        self.resolve()

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def resolve(self) -> Route:
        route = decode(self._location.fragment)
        if route != self.current:
            _logger.debug(f"route changed: {self.current} -> {route}")
            self.current = route
            for callback in list(self._subscribers):
                callback(route)
        return self.current

    def close(self) -> None:
        self._remove_listener()
        self._subscribers.clear()
