"""Canonical vocabularies for clothing items and outfit collections.

The option lists mirror what the wardrobe forms offer. Stored values remain
free text, so helpers here only canonicalise spelling and casing against the
known options and never reject an unknown label.
"""

from typing import Iterable, List, Optional

CLOTHING_TYPES: List[str] = [
    "Camisa",
    "Pantalón",
    "Vestido",
    "Falda",
    "Chaqueta",
    "Jersey",
    "Zapatos",
    "Accesorio",
    "Otro",
]
SEASONS: List[str] = ["Primavera", "Verano", "Otoño", "Invierno", "Todo el año"]
FABRICS: List[str] = ["Algodón", "Lana", "Seda", "Lino", "Poliéster", "Cuero", "Denim", "Otro"]

# Vocabulary the autocomplete prompt constrains the model to.
AI_GARMENT_TYPES: List[str] = [
    "Prendas superiores",
    "Prendas inferiores",
    "Entero",
    "Abrigos",
    "Zapatos",
    "Accesorios",
    "Otros",
]
AI_SEASONS: List[str] = ["Primavera", "Verano", "Otoño", "Invierno", "Para todo el año"]

DEFAULT_COLLECTION = "General"
FAVORITES_COLLECTION = "Favoritos"
RESERVED_COLLECTION_NAMES = (FAVORITES_COLLECTION, DEFAULT_COLLECTION)

PLACEHOLDER_IMAGE_URL = "https://placehold.co/300x300.png?text=Prenda"
MAX_IMAGE_DATA_URI_CHARS = 1_000_000


def normalise_label(value: Optional[str]) -> str:
    """Trim and collapse internal whitespace."""

    if value is None:
        return ""
    return " ".join(str(value).split())


def match_option(value: Optional[str], options: Iterable[str]) -> str:
    """Return the canonical spelling of ``value`` if it matches an option.

    Matching is case-insensitive; unknown values come back trimmed but
    otherwise untouched.
    """

    cleaned = normalise_label(value)
    folded = cleaned.casefold()
    for option in options:
        if option.casefold() == folded:
            return option
    return cleaned


def is_reserved_collection(name: Optional[str]) -> bool:
    """Whether ``name`` is the default collection or the favorites pseudo-group."""

    return normalise_label(name) in RESERVED_COLLECTION_NAMES


__all__ = [
    "AI_GARMENT_TYPES",
    "AI_SEASONS",
    "CLOTHING_TYPES",
    "DEFAULT_COLLECTION",
    "FABRICS",
    "FAVORITES_COLLECTION",
    "MAX_IMAGE_DATA_URI_CHARS",
    "PLACEHOLDER_IMAGE_URL",
    "RESERVED_COLLECTION_NAMES",
    "SEASONS",
    "is_reserved_collection",
    "match_option",
    "normalise_label",
]
