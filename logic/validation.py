"""Pydantic schemas and helpers for validating form and API payloads."""

from __future__ import annotations

import base64
import binascii
import re
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ValidationError, field_validator, model_validator

from logic.errors import ValidationFailure
from models.taxonomy import MAX_IMAGE_DATA_URI_CHARS, normalise_label

_DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def parse_data_uri(value: str, require_image: bool = True) -> Tuple[str, bytes]:
    """Split a ``data:<mime>;base64,<payload>`` URI into media type and bytes.

    Raises :class:`ValueError` when the URI is malformed, the payload is not
    valid base64, or (with ``require_image``) the media type is not an image.
    """

    match = _DATA_URI_PATTERN.match(value.strip()) if value else None
    if not match:
        raise ValueError("La imagen debe ser un data URI con tipo MIME y codificación Base64.")
    mime_type = match.group("mime").lower()
    if require_image and not mime_type.startswith("image/"):
        raise ValueError(f"El tipo de archivo '{mime_type}' no es una imagen.")
    try:
        payload = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Los datos de la imagen no están codificados en Base64 válido.") from exc
    if not payload:
        raise ValueError("La imagen está vacía.")
    return mime_type, payload


def _required_text(value: Optional[str], message: str) -> str:
    cleaned = normalise_label(value)
    if not cleaned:
        raise ValueError(message)
    return cleaned


class ClothingItemForm(BaseModel):
    """Add/edit form for a clothing item."""

    name: str
    type: str
    color: str
    season: str
    fabric: str
    image_data_uri: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        cleaned = normalise_label(value)
        if len(cleaned) < 2:
            raise ValueError("El nombre debe tener al menos 2 caracteres.")
        if len(cleaned) > 50:
            raise ValueError("El nombre no puede exceder los 50 caracteres.")
        return cleaned

    @field_validator("type")
    @classmethod
    def _validate_type(cls, value: str) -> str:
        return _required_text(value, "Por favor, selecciona un tipo.")

    @field_validator("color")
    @classmethod
    def _validate_color(cls, value: str) -> str:
        return _required_text(value, "Por favor, introduce un color.")

    @field_validator("season")
    @classmethod
    def _validate_season(cls, value: str) -> str:
        return _required_text(value, "Por favor, selecciona una estación.")

    @field_validator("fabric")
    @classmethod
    def _validate_fabric(cls, value: str) -> str:
        return _required_text(value, "Por favor, selecciona un tejido.")

    @field_validator("image_data_uri")
    @classmethod
    def _validate_image(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        if len(value) > MAX_IMAGE_DATA_URI_CHARS:
            raise ValueError("La imagen es demasiado grande para guardarse. Usa una imagen más pequeña.")
        parse_data_uri(value)
        return value


class ClothingItemUpdate(BaseModel):
    """Partial edit of a clothing item; omitted fields stay as they are."""

    name: Optional[str] = None
    type: Optional[str] = None
    color: Optional[str] = None
    season: Optional[str] = None
    fabric: Optional[str] = None
    image_data_uri: Optional[str] = None

    @model_validator(mode="after")
    def _validate_present_fields(self) -> "ClothingItemUpdate":
        provided = self.model_dump(exclude_none=True)
        if not provided:
            raise ValueError("No hay cambios que guardar.")
        # Reuse the full form rules on the provided subset.
        placeholder = {"name": "xx", "type": "x", "color": "x", "season": "x", "fabric": "x"}
        try:
            checked = ClothingItemForm.model_validate({**placeholder, **provided})
        except ValidationError as exc:
            raise ValueError(_error_message(exc.errors()[0])) from exc
        for key in provided:
            setattr(self, key, getattr(checked, key))
        return self


class ClothingItemDraft(BaseModel):
    """Field state of the add-item form before it is submitted."""

    name: str = ""
    type: str = ""
    color: str = ""
    season: str = ""
    fabric: str = ""
    image_data_uri: Optional[str] = None


class OutfitForm(BaseModel):
    """Create/edit form for an outfit.

    ``collection_name`` picks an existing collection; ``new_collection_name``
    creates one instead and takes precedence when both are given.
    """

    name: str
    item_ids: List[str]
    collection_name: Optional[str] = None
    new_collection_name: Optional[str] = None
    description: Optional[str] = None
    occasion: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        cleaned = normalise_label(value)
        if len(cleaned) < 3:
            raise ValueError("El nombre debe tener al menos 3 caracteres.")
        if len(cleaned) > 50:
            raise ValueError("El nombre no puede exceder 50 caracteres.")
        return cleaned

    @field_validator("item_ids")
    @classmethod
    def _validate_items(cls, value: List[str]) -> List[str]:
        ids = [str(item_id).strip() for item_id in value if str(item_id).strip()]
        if not ids:
            raise ValueError("Debes seleccionar al menos una prenda para el atuendo.")
        return ids

    @field_validator("description", "occasion")
    @classmethod
    def _clean_optional(cls, value: Optional[str]) -> Optional[str]:
        cleaned = (value or "").strip()
        return cleaned or None


class SignUpForm(BaseModel):
    email: str
    password: str
    confirm_password: str

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        return validate_email(value)

    @field_validator("password")
    @classmethod
    def _validate_password(cls, value: str) -> str:
        return validate_password(value)

    @model_validator(mode="after")
    def _passwords_match(self) -> "SignUpForm":
        if self.password != self.confirm_password:
            raise ValueError("Las contraseñas no coinciden.")
        return self


class SignInForm(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        return validate_email(value)

    @field_validator("password")
    @classmethod
    def _validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError("Por favor, introduce tu contraseña.")
        return value


class PasswordResetForm(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        return validate_email(value)


class ProfileUpdateForm(BaseModel):
    display_name: Optional[str] = None
    new_password: Optional[str] = None
    confirm_password: Optional[str] = None

    @field_validator("display_name")
    @classmethod
    def _validate_display_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = normalise_label(value)
        if not cleaned:
            raise ValueError("El nombre no puede estar vacío.")
        if len(cleaned) > 50:
            raise ValueError("El nombre no puede exceder los 50 caracteres.")
        return cleaned

    @field_validator("new_password")
    @classmethod
    def _validate_new_password(cls, value: Optional[str]) -> Optional[str]:
        return validate_password(value) if value is not None else None

    @model_validator(mode="after")
    def _check_changes(self) -> "ProfileUpdateForm":
        if self.display_name is None and self.new_password is None:
            raise ValueError("No hay cambios que guardar.")
        if self.new_password is not None and self.new_password != self.confirm_password:
            raise ValueError("Las contraseñas no coinciden.")
        return self


def validate_email(value: str) -> str:
    cleaned = (value or "").strip()
    if not _EMAIL_PATTERN.match(cleaned):
        raise ValueError("Por favor, introduce un email válido.")
    return cleaned


def validate_password(value: str) -> str:
    if len(value or "") < 6:
        raise ValueError("La contraseña debe tener al menos 6 caracteres.")
    return value


class ValidationResult(BaseModel):
    """Envelope returned when a payload fails schema checks."""

    status: Literal["needs_review"] = "needs_review"
    message: str
    details: List[Dict[str, Any]]


def _error_message(error: Dict[str, Any]) -> str:
    ctx_error = (error.get("ctx") or {}).get("error")
    return str(ctx_error) if ctx_error else str(error.get("msg", "Valor no válido."))


def validation_failure(message: str, exc: ValidationError) -> Dict[str, Any]:
    """Translate Pydantic errors into a consistent review payload."""

    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())) or "__root__",
            "code": "invalid_value",
            "message": _error_message(error),
        }
        for error in exc.errors()
    ]
    return ValidationResult(message=message, details=details).model_dump()


def first_failure(exc: ValidationError) -> ValidationFailure:
    """Convert the first Pydantic error into a :class:`ValidationFailure`."""

    error = exc.errors()[0]
    field = ".".join(str(part) for part in error.get("loc", ())) or "__root__"
    return ValidationFailure(field, "invalid_value", _error_message(error))


def validate_form(model: type[BaseModel], payload: Dict[str, Any]) -> Any:
    """Validate ``payload`` against ``model`` raising :class:`ValidationFailure`."""

    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise first_failure(exc) from exc


__all__ = [
    "ClothingItemDraft",
    "ClothingItemForm",
    "ClothingItemUpdate",
    "OutfitForm",
    "PasswordResetForm",
    "ProfileUpdateForm",
    "SignInForm",
    "SignUpForm",
    "ValidationResult",
    "first_failure",
    "parse_data_uri",
    "validate_email",
    "validate_form",
    "validate_password",
    "validation_failure",
]
