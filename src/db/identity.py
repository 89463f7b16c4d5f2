from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Literal, Optional

from db.errors import AlreadyAuthenticatedError
from utils.logger import get_logger

_logger = get_logger(__name__)

LoginStatus = Literal["idle", "logging-in", "success", "login-error"]


@dataclass(frozen=True)
class Identity:
    principal: str

    def __str__(self) -> str:
        return self.principal


class AuthClient:
    """
    Holds the authenticated identity for this client.

    Issuing identities is the identity provider's job; locally a login simply
    binds the principal the user typed in.
    """

    def __init__(self) -> None:
        self.identity: Optional[Identity] = None
        self.status: LoginStatus = "idle"

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    async def login(self, principal: str) -> Identity:
        if self.identity is not None:
            self.status = "login-error"
            raise AlreadyAuthenticatedError()

        principal = (principal or "").strip()
        if not principal:
            self.status = "login-error"
            raise ValueError("Principal cannot be empty.")

        self.status = "logging-in"
        # hand control back to the loop, an identity provider round trip goes here
        await asyncio.sleep(0)
        self.identity = Identity(principal)
        self.status = "success"
        _logger.info(f"Logged in as {principal}")
        return self.identity

    async def clear(self) -> None:
        if self.identity is not None:
            _logger.info(f"Cleared identity {self.identity}")
        self.identity = None
        self.status = "idle"
