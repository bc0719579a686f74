"""Model package exports."""

from models.taxonomy import *  # noqa: F401,F403
from models.clothing_item import ClothingItem
from models.outfit import Outfit

__all__ = ["ClothingItem", "Outfit"]
