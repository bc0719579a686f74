"""Authenticated session shared by services and views."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from armario_app.logging_config import get_logger, log_event
from logic.errors import AuthenticationRequired
from tools.identity_provider import Identity, IdentityProvider

LOGGER = get_logger(__name__)

OwnerListener = Callable[[Optional[str]], None]


class AuthSession:
    """Holds the current identity and announces owner changes.

    Components receive the session explicitly and read :attr:`owner_id` or call
    :meth:`require_owner`; listeners registered with :meth:`on_owner_change`
    run after every sign-in, sign-out or account switch so views can release
    subscriptions bound to the previous owner.
    """

    def __init__(self, provider: IdentityProvider, identity: Identity | None = None) -> None:
        self.provider = provider
        self._identity = identity
        self._listeners: List[OwnerListener] = []

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def owner_id(self) -> str | None:
        return self._identity.user_id if self._identity else None

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None

    def require_owner(self) -> str:
        return self.require_identity().user_id

    def require_identity(self) -> Identity:
        identity = self._identity
        if identity is None:
            log_event(LOGGER, logging.WARNING, "auth_required_refused")
            raise AuthenticationRequired()
        return identity

    def on_owner_change(self, listener: OwnerListener) -> Callable[[], None]:
        """Register ``listener``; the returned callable removes it again."""

        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _set_identity(self, identity: Identity | None) -> None:
        previous_owner = self.owner_id
        self._identity = identity
        if self.owner_id != previous_owner:
            log_event(LOGGER, logging.INFO, "auth_owner_changed", signed_in=identity is not None)
            for listener in list(self._listeners):
                listener(self.owner_id)

    def sign_up(self, email: str, password: str) -> Identity:
        identity = self.provider.sign_up(email, password)
        self._set_identity(identity)
        return identity

    def sign_in(self, email: str, password: str) -> Identity:
        identity = self.provider.sign_in(email, password)
        self._set_identity(identity)
        return identity

    def sign_out(self) -> None:
        if self._identity:
            self.provider.sign_out(self._identity)
        self._set_identity(None)

    def send_password_reset(self, email: str) -> None:
        self.provider.send_password_reset(email)

    def update_password(self, new_password: str) -> Identity:
        identity = self.provider.update_password(self.require_identity(), new_password)
        self._identity = identity
        return identity

    def update_display_name(self, display_name: str) -> Identity:
        identity = self.provider.update_display_name(self.require_identity(), display_name)
        self._identity = identity
        return identity


__all__ = ["AuthSession"]
