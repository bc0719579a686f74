"""Thin JSON-mode wrapper around ``google.generativeai`` models."""

from __future__ import annotations

import json
import logging
from typing import Any, List

import google.generativeai as genai

from armario_app.logging_config import get_logger, log_event
from logic.errors import AIExchangeError

LOGGER = get_logger(__name__)


class GenerativeJSONClient:
    """Send one prompt, get one JSON object back.

    Calls are single-shot: no retries and no caching of earlier answers.
    ``model`` can be any object exposing ``generate_content``; when omitted a
    :class:`google.generativeai.GenerativeModel` is built from ``model_name``.
    """

    def __init__(
        self,
        model_name: str,
        system_instruction: str | None = None,
        timeout_seconds: float = 30.0,
        model: Any | None = None,
    ) -> None:
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds
        self._model = model or genai.GenerativeModel(
            model_name=model_name, system_instruction=system_instruction
        )

    def generate_json(self, parts: List[Any], temperature: float | None = None) -> Any:
        """Return the decoded JSON payload of the model's answer.

        Raises :class:`AIExchangeError` if the call fails, is blocked, times out
        or returns text that is not JSON.
        """

        config = genai.GenerationConfig(response_mime_type="application/json", temperature=temperature)
        try:
            response = self._model.generate_content(
                parts,
                generation_config=config,
                request_options={"timeout": self.timeout_seconds},
            )
            text = response.text
        except Exception as exc:  # noqa: BLE001 - any SDK or transport failure ends this attempt
            log_event(LOGGER, logging.ERROR, "genai_call_failed", model=self.model_name, exc_info=True)
            raise AIExchangeError("El modelo de IA no respondió correctamente.") from exc

        try:
            return json.loads(text)
        except (TypeError, json.JSONDecodeError) as exc:
            log_event(LOGGER, logging.WARNING, "genai_non_json_response", model=self.model_name)
            raise AIExchangeError("La respuesta de la IA no tenía el formato esperado.") from exc


__all__ = ["GenerativeJSONClient"]
