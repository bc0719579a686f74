"""Outfit suggestion agent backed by the generative model."""

from __future__ import annotations

import logging
from typing import Any, Dict, Sequence

from pydantic import ValidationError

from armario_app.config import AppConfig
from armario_app.logging_config import get_logger, log_event, operation_context
from logic.ai_contract import (
    SuggestionView,
    SuggestOutfitInput,
    SuggestOutfitOutput,
    WardrobeItemForAI,
    render_suggestion,
)
from logic.errors import AIExchangeError
from logic.prompts import suggestion_prompt, system_instruction
from logic.validation import first_failure
from models.clothing_item import ClothingItem
from tools.genai_client import GenerativeJSONClient

logger = get_logger(__name__)


class OutfitSuggestionAgent:
    """Suggests one outfit for an occasion from the user's own wardrobe.

    The model receives a snapshot of the inventory keyed by item id and is
    asked to echo those ids back, so the answer can be mapped onto real items
    even when two garments share every descriptive attribute.
    """

    def __init__(self, config: AppConfig, client: GenerativeJSONClient | None = None) -> None:
        self.config = config
        self.system_instruction = system_instruction(
            "un estilista de moda experto, detallista y creativo, con buen sentido de la coherencia visual"
        )
        self.client = client or GenerativeJSONClient(
            model_name=config.model,
            system_instruction=self.system_instruction,
            timeout_seconds=config.ai_timeout_seconds,
        )

    def build_request(
        self, occasion: str, wardrobe: Sequence[ClothingItem], attempt_number: int | None = None
    ) -> SuggestOutfitInput:
        payload: Dict[str, Any] = {
            "occasion": occasion,
            "wardrobe": [WardrobeItemForAI.from_clothing_item(item) for item in wardrobe],
            "attempt_number": attempt_number,
        }
        try:
            return SuggestOutfitInput.model_validate(payload)
        except ValidationError as exc:
            raise first_failure(exc) from exc

    def suggest(
        self, occasion: str, wardrobe: Sequence[ClothingItem], attempt_number: int | None = None
    ) -> SuggestOutfitOutput:
        """Run one suggestion exchange and return the validated response."""

        with operation_context("agent:outfit_suggester") as correlation_id:
            request = self.build_request(occasion, wardrobe, attempt_number)
            raw = self.client.generate_json(
                [suggestion_prompt(request)], temperature=self.config.suggestion_temperature
            )
            try:
                output = SuggestOutfitOutput.model_validate(raw)
            except ValidationError as exc:
                log_event(
                    logger,
                    logging.WARNING,
                    "suggestion_response_invalid",
                    correlation_id=correlation_id,
                    errors=len(exc.errors()),
                )
                raise AIExchangeError("La respuesta de la IA no tenía el formato esperado.") from exc

            log_event(
                logger,
                logging.INFO,
                "agent_call_completed",
                agent="outfit_suggester",
                correlation_id=correlation_id,
                wardrobe_size=len(request.wardrobe),
                suggested=len(output.outfit_suggestion or []),
                has_reasoning=output.reasoning is not None,
            )
            return output

    def suggest_view(
        self, occasion: str, wardrobe: Sequence[ClothingItem], attempt_number: int | None = None
    ) -> SuggestionView:
        """Suggest and render against the same inventory snapshot."""

        return render_suggestion(self.suggest(occasion, wardrobe, attempt_number), wardrobe)


__all__ = ["OutfitSuggestionAgent"]
