"""Agent that infers clothing attributes from a photo."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from armario_app.config import AppConfig
from armario_app.logging_config import get_logger, log_event, operation_context
from logic.ai_contract import (
    AutocompleteClothingDetailsInput,
    AutocompleteClothingDetailsOutput,
    apply_autocomplete,
)
from logic.errors import AIExchangeError, ValidationFailure
from logic.prompts import autocomplete_prompt, system_instruction
from logic.validation import ClothingItemDraft, first_failure
from tools.genai_client import GenerativeJSONClient

logger = get_logger(__name__)


class ClothingAutocompleteAgent:
    """Fills the add-item form from a photo of the garment."""

    def __init__(self, config: AppConfig, client: GenerativeJSONClient | None = None) -> None:
        self.config = config
        self.system_instruction = system_instruction(
            "un asistente experto en analizar imágenes de prendas de vestir y sugerir sus detalles"
        )
        self.client = client or GenerativeJSONClient(
            model_name=config.model,
            system_instruction=self.system_instruction,
            timeout_seconds=config.ai_timeout_seconds,
        )

    def autocomplete(self, photo_data_uri: str) -> AutocompleteClothingDetailsOutput:
        """Return the inferred attributes for one photo.

        Raises :class:`ValidationFailure` for a malformed photo and
        :class:`AIExchangeError` when the model call fails or answers off-schema.
        """

        with operation_context("agent:clothing_autocomplete") as correlation_id:
            try:
                request = AutocompleteClothingDetailsInput(photo_data_uri=photo_data_uri)
            except ValidationError as exc:
                raise first_failure(exc) from exc

            mime_type, payload = request.media()
            raw: Any = self.client.generate_json(
                [autocomplete_prompt(), {"mime_type": mime_type, "data": payload}]
            )
            try:
                details = AutocompleteClothingDetailsOutput.model_validate(raw)
            except ValidationError as exc:
                log_event(
                    logger,
                    logging.WARNING,
                    "autocomplete_response_invalid",
                    correlation_id=correlation_id,
                    errors=len(exc.errors()),
                )
                raise AIExchangeError("No se pudieron autocompletar los detalles.") from exc

            log_event(
                logger,
                logging.INFO,
                "agent_call_completed",
                agent="clothing_autocomplete",
                correlation_id=correlation_id,
                garment_type=details.type,
            )
            return details

    def fill_draft(self, draft: ClothingItemDraft) -> ClothingItemDraft:
        """Return an updated copy of ``draft``; on any failure ``draft`` is untouched."""

        if not draft.image_data_uri:
            raise ValidationFailure("image_data_uri", "image_required", "Por favor, selecciona una imagen primero.")
        details = self.autocomplete(draft.image_data_uri)
        return apply_autocomplete(draft, details)


__all__ = ["ClothingAutocompleteAgent"]
