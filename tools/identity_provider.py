"""Identity provider abstractions and implementations."""

from __future__ import annotations

import hashlib
import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Dict, Optional

import requests
from pydantic import BaseModel, ValidationError

from armario_app.logging_config import get_logger, log_event
from logic.errors import IdentityError

LOGGER = get_logger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"


@dataclass(frozen=True)
class Identity:
    """The authenticated user as the rest of the app sees it."""

    user_id: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    id_token: Optional[str] = None


class IdentityProvider(ABC):
    """Sign-in, sign-up and account maintenance operations."""

    @abstractmethod
    def sign_up(self, email: str, password: str) -> Identity:
        """Create an account and return the signed-in identity."""

    @abstractmethod
    def sign_in(self, email: str, password: str) -> Identity:
        """Verify credentials and return the signed-in identity."""

    def sign_out(self, identity: Identity) -> None:
        """Release provider-side state for ``identity``; stateless by default."""

    @abstractmethod
    def send_password_reset(self, email: str) -> None:
        """Send a password reset message."""

    @abstractmethod
    def update_password(self, identity: Identity, new_password: str) -> Identity:
        """Change the password of the signed-in user."""

    @abstractmethod
    def update_display_name(self, identity: Identity, display_name: str) -> Identity:
        """Change the display name of the signed-in user."""


class _AuthResponse(BaseModel):
    localId: str
    email: str = ""
    displayName: Optional[str] = None
    photoUrl: Optional[str] = None
    idToken: Optional[str] = None


class _ErrorBody(BaseModel):
    message: str = "UNKNOWN"


class _ErrorResponse(BaseModel):
    error: _ErrorBody


# Provider error codes mapped to messages shown next to the auth forms.
FIREBASE_ERROR_MESSAGES: Dict[str, str] = {
    "EMAIL_EXISTS": "Este email ya está registrado.",
    "EMAIL_NOT_FOUND": "Email o contraseña incorrectos.",
    "INVALID_PASSWORD": "Email o contraseña incorrectos.",
    "INVALID_LOGIN_CREDENTIALS": "Email o contraseña incorrectos.",
    "USER_DISABLED": "Esta cuenta ha sido deshabilitada.",
    "WEAK_PASSWORD": "La contraseña debe tener al menos 6 caracteres.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Demasiados intentos. Inténtalo más tarde.",
    "CREDENTIAL_TOO_OLD_LOGIN_AGAIN": "Vuelve a iniciar sesión para cambiar la contraseña.",
}


class FirebaseIdentityProvider(IdentityProvider):
    """Identity Toolkit REST client used by Firebase Authentication."""

    def __init__(self, api_key: str | None, timeout_seconds: float = 10.0, base_url: str = IDENTITY_TOOLKIT_URL) -> None:
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.base_url = base_url.rstrip("/")

    def _post(self, endpoint: str, payload: dict) -> dict:
        if not self.api_key:
            raise IdentityError("configuration", "Falta la clave de API del proveedor de identidad.")

        url = f"{self.base_url}/accounts:{endpoint}"
        try:
            response = requests.post(url, params={"key": self.api_key}, json=payload, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            log_event(
                LOGGER, logging.ERROR, "identity_provider_unreachable", endpoint=endpoint, error_type=type(exc).__name__
            )
            raise IdentityError("unavailable", "No se pudo contactar con el servicio de autenticación.") from exc

        if response.status_code >= 400:
            raise self._error_from(response)
        return response.json()

    @staticmethod
    def _error_from(response: requests.Response) -> IdentityError:
        try:
            body = _ErrorResponse.model_validate(response.json())
            raw_code = body.error.message
        except (ValueError, ValidationError):
            raw_code = "UNKNOWN"
        # Codes can carry a suffix such as "WEAK_PASSWORD : Password should be ...".
        code = raw_code.split(" ")[0].split(":")[0]
        message = FIREBASE_ERROR_MESSAGES.get(code, "No se pudo completar la operación de autenticación.")
        log_event(LOGGER, logging.WARNING, "identity_provider_rejected", code=code)
        return IdentityError(code, message)

    @staticmethod
    def _to_identity(payload: dict, previous: Identity | None = None) -> Identity:
        try:
            parsed = _AuthResponse.model_validate(payload)
        except ValidationError as exc:
            raise IdentityError("schema", "Respuesta inesperada del servicio de autenticación.") from exc
        return Identity(
            user_id=parsed.localId,
            email=parsed.email or (previous.email if previous else ""),
            display_name=parsed.displayName if parsed.displayName is not None else (previous.display_name if previous else None),
            photo_url=parsed.photoUrl or (previous.photo_url if previous else None),
            id_token=parsed.idToken or (previous.id_token if previous else None),
        )

    def sign_up(self, email: str, password: str) -> Identity:
        payload = self._post("signUp", {"email": email, "password": password, "returnSecureToken": True})
        return self._to_identity(payload)

    def sign_in(self, email: str, password: str) -> Identity:
        payload = self._post(
            "signInWithPassword", {"email": email, "password": password, "returnSecureToken": True}
        )
        return self._to_identity(payload)

    def send_password_reset(self, email: str) -> None:
        self._post("sendOobCode", {"requestType": "PASSWORD_RESET", "email": email})

    def update_password(self, identity: Identity, new_password: str) -> Identity:
        payload = self._post(
            "update", {"idToken": identity.id_token, "password": new_password, "returnSecureToken": True}
        )
        return self._to_identity(payload, previous=identity)

    def update_display_name(self, identity: Identity, display_name: str) -> Identity:
        payload = self._post(
            "update", {"idToken": identity.id_token, "displayName": display_name, "returnSecureToken": True}
        )
        return self._to_identity(payload, previous=identity)


@dataclass
class _LocalAccount:
    user_id: str
    email: str
    salt: str
    password_hash: str
    display_name: Optional[str] = None


class LocalIdentityProvider(IdentityProvider):
    """In-memory accounts for offline runs and tests."""

    def __init__(self) -> None:
        self._accounts: Dict[str, _LocalAccount] = {}
        self.reset_requests: list[str] = []

    @staticmethod
    def _hash(password: str, salt: str) -> str:
        return hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), 100_000).hex()

    @staticmethod
    def _key(email: str) -> str:
        return email.strip().lower()

    def _account_for(self, identity: Identity) -> _LocalAccount:
        account = self._accounts.get(self._key(identity.email))
        if not account or account.user_id != identity.user_id:
            raise IdentityError("USER_NOT_FOUND", "La sesión ya no es válida. Vuelve a iniciar sesión.")
        return account

    def _to_identity(self, account: _LocalAccount) -> Identity:
        return Identity(
            user_id=account.user_id,
            email=account.email,
            display_name=account.display_name,
            id_token=secrets.token_hex(16),
        )

    def sign_up(self, email: str, password: str) -> Identity:
        key = self._key(email)
        if key in self._accounts:
            raise IdentityError("EMAIL_EXISTS", FIREBASE_ERROR_MESSAGES["EMAIL_EXISTS"])
        if len(password) < 6:
            raise IdentityError("WEAK_PASSWORD", FIREBASE_ERROR_MESSAGES["WEAK_PASSWORD"])
        salt = secrets.token_hex(8)
        account = _LocalAccount(
            user_id=f"user-{secrets.token_hex(6)}",
            email=email.strip(),
            salt=salt,
            password_hash=self._hash(password, salt),
        )
        self._accounts[key] = account
        return self._to_identity(account)

    def sign_in(self, email: str, password: str) -> Identity:
        account = self._accounts.get(self._key(email))
        if not account or not secrets.compare_digest(account.password_hash, self._hash(password, account.salt)):
            raise IdentityError("INVALID_LOGIN_CREDENTIALS", FIREBASE_ERROR_MESSAGES["INVALID_LOGIN_CREDENTIALS"])
        return self._to_identity(account)

    def send_password_reset(self, email: str) -> None:
        # Unknown emails are accepted silently so the form does not reveal which accounts exist.
        if self._key(email) in self._accounts:
            self.reset_requests.append(self._key(email))

    def update_password(self, identity: Identity, new_password: str) -> Identity:
        account = self._account_for(identity)
        if len(new_password) < 6:
            raise IdentityError("WEAK_PASSWORD", FIREBASE_ERROR_MESSAGES["WEAK_PASSWORD"])
        account.salt = secrets.token_hex(8)
        account.password_hash = self._hash(new_password, account.salt)
        return identity

    def update_display_name(self, identity: Identity, display_name: str) -> Identity:
        account = self._account_for(identity)
        account.display_name = display_name
        return replace(identity, display_name=display_name)


def build_identity_provider(backend: str, api_key: str | None = None) -> IdentityProvider:
    """Return the provider named by configuration."""

    if backend == "firebase":
        return FirebaseIdentityProvider(api_key=api_key)
    if backend == "local":
        return LocalIdentityProvider()
    raise ValueError(f"Unsupported identity backend '{backend}'. Allowed: ['firebase', 'local']")


__all__ = [
    "FirebaseIdentityProvider",
    "Identity",
    "IdentityProvider",
    "LocalIdentityProvider",
    "build_identity_provider",
]
