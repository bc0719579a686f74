"""Application bootstrap: wires the store, session, services and agents."""

import logging

import google.generativeai as genai

from agents.clothing_autocomplete import ClothingAutocompleteAgent
from agents.outfit_suggester import OutfitSuggestionAgent
from armario_app.config import AppConfig
from armario_app.logging_config import configure_logging, get_logger, log_event
from logic.boards import OutfitBoard, WardrobeBoard
from logic.outfit_service import OutfitService
from logic.wardrobe_service import WardrobeService
from memory.auth_session import AuthSession
from tools.identity_provider import IdentityProvider, build_identity_provider
from tools.item_store import ItemStore, SQLiteItemStore

LOGGER = get_logger(__name__)


class ArmarioApp:
    """Owns one authenticated session and everything scoped to it."""

    def __init__(
        self,
        config: AppConfig | None = None,
        store: ItemStore | None = None,
        identity_provider: IdentityProvider | None = None,
        autocomplete_agent: ClothingAutocompleteAgent | None = None,
        suggestion_agent: OutfitSuggestionAgent | None = None,
    ) -> None:
        self.config = config or AppConfig.from_env()
        configure_logging()
        if self.config.api_key:
            genai.configure(api_key=self.config.api_key)

        self.store = store or SQLiteItemStore(self.config.database_path)
        self.identity_provider = identity_provider or build_identity_provider(
            self.config.identity_backend, api_key=self.config.firebase_api_key
        )
        self.session = AuthSession(self.identity_provider)

        self.wardrobe = WardrobeService(self.session, self.store)
        self.outfits = OutfitService(self.session, self.store)
        self.wardrobe_board = WardrobeBoard(self.session, self.store)
        self.outfit_board = OutfitBoard(self.session, self.store)
        self.wardrobe_board.mount()
        self.outfit_board.mount()

        self.autocomplete_agent = autocomplete_agent or ClothingAutocompleteAgent(self.config)
        self.suggestion_agent = suggestion_agent or OutfitSuggestionAgent(self.config)

        log_event(
            LOGGER,
            logging.INFO,
            "app_started",
            environment=self.config.environment or "local",
            identity_backend=self.config.identity_backend,
            model=self.config.model,
        )

    def shutdown(self) -> None:
        """Release live subscriptions held by the boards."""

        self.wardrobe_board.unmount()
        self.outfit_board.unmount()


__all__ = ["ArmarioApp"]
