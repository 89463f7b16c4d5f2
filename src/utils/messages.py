from textual.message import Message

from utils.routes import Route


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class RouteChangedMessage(Message):
    """
    Posted at app level by the route observer whenever the location resolves
    to a different route. The app swaps the page in response.
    """

    bubble = True

    def __init__(self, route: Route) -> None:
        super().__init__()
        self.route = route


class CartChangedMessage(Message):
    """
    Fired by the session whenever the cart value is replaced.
    Sidebar cart summary and checkout page refresh on it.
    """

    bubble = True


class IdentityChangedMessage(Message):
    """
    Fired after login or logout, once the actor for the new identity is ready.
    Pages reload their queries, the sidebar redraws user info.
    """

    bubble = True


class QueryInvalidatedMessage(Message):
    """
    Fired when a mutation invalidated cached queries, so visible pages refetch.
    """

    bubble = True

    def __init__(self, key: tuple) -> None:
        super().__init__()
        self.key = key


class UserLoginMessage(Message):
    """
    Asks the app to run the login flow (sidebar button, blocked admin page).
    """

    bubble = True


class UserLogoutMessage(Message):
    bubble = True
