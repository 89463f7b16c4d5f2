from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from db.actor import ActorFactory, ActorRegistry
from db.errors import AlreadyAuthenticatedError
from db.identity import AuthClient, Identity
from db.queries import StoreApi
from utils import settings
from utils.cart import Cart, CartLine
from utils.location import Location
from utils.logger import get_logger
from utils.route_observer import RouteObserver
from utils.routes import Route, navigate

_logger = get_logger(__name__)

CartListener = Callable[[Cart], None]


@dataclass
class SessionState:
    """
    Everything one storefront session owns, handed to the pages that need it.

    Fields:
      - location / routes: where the user is, and the route observer over it
      - auth / actors / api: identity, its transport handle, cached backend calls
      - cart: the current cart value; replaced (never mutated) on every change
    """

    location: Location
    auth: AuthClient
    actors: ActorRegistry
    api: StoreApi
    cart: Cart = field(default_factory=Cart)
    routes: RouteObserver = field(init=False)
    _cart_listeners: List[CartListener] = field(default_factory=list, init=False)

    def __post_init__(self) -> None:
        self.routes = RouteObserver(self.location)

    @classmethod
    def create(cls, actor_factory: ActorFactory, fragment: str = "#/") -> SessionState:
        auth = AuthClient()
        actors = ActorRegistry(actor_factory)
        return cls(
            location=Location(fragment),
            auth=auth,
            actors=actors,
            api=StoreApi(auth, actors),
        )

    @property
    def identity(self) -> Optional[Identity]:
        return self.auth.identity

    @property
    def is_authenticated(self) -> bool:
        return self.auth.is_authenticated

    # ---------------------------
    # Navigation
    # ---------------------------

    def navigate(self, route: Route) -> None:
        navigate(self.location, route)

    # ---------------------------
    # Cart
    # ---------------------------

    def on_cart_change(self, listener: CartListener) -> Callable[[], None]:
        self._cart_listeners.append(listener)

        def remove() -> None:
            if listener in self._cart_listeners:
                self._cart_listeners.remove(listener)

        return remove

    def _set_cart(self, cart: Cart) -> Cart:
        if cart is not self.cart:
            self.cart = cart
            for listener in list(self._cart_listeners):
                listener(cart)
        return self.cart

    def add_to_cart(self, item: CartLine) -> Cart:
        return self._set_cart(self.cart.add(item))

    def remove_from_cart(self, product_id: str) -> Cart:
        return self._set_cart(self.cart.remove(product_id))

    def update_cart_quantity(self, product_id: str, quantity: int) -> Cart:
        return self._set_cart(self.cart.set_quantity(product_id, quantity))

    def clear_cart(self) -> Cart:
        return self._set_cart(self.cart.clear())

    # ---------------------------
    # Identity
    # ---------------------------

    async def start(self) -> None:
        """Build the actor for whoever is (not) logged in right now."""
        await self.actors.ensure(self.auth.identity)

    async def login(self, principal: str) -> Identity:
        """
        Log in, then rebuild the actor for the new identity. A login that runs
        into a still active session clears it and tries once more after a
        short delay.
        """
        try:
            identity = await self.auth.login(principal)
        except AlreadyAuthenticatedError:
            _logger.warning("Session already authenticated, clearing and retrying login")
            await self.auth.clear()
            self.api.cache.clear()
            await asyncio.sleep(settings.LOGIN_RETRY_DELAY)
            identity = await self.auth.login(principal)

        await self.actors.ensure(identity)
        return identity

    async def logout(self) -> None:
        await self.auth.clear()
        self.api.cache.clear()
        await self.actors.ensure(None)
