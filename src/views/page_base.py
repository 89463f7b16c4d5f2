from textual.containers import VerticalScroll

from utils.state import SessionState


class Page(VerticalScroll):
    """
    One routed page, mounted into the screen's page outlet.

    The app calls ``reload`` after an identity change or when cached queries
    the page may show were invalidated, and ``cart_changed`` whenever the
    cart value is replaced.
    """

    TITLE = ""

    def __init__(self, session: SessionState, **kwargs) -> None:
        super().__init__(**kwargs)
        self.session = session

    def reload(self) -> None:
        pass

    def cart_changed(self) -> None:
        pass
