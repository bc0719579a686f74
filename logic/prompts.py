"""System instruction and prompt templates for the generative-model exchanges."""

from __future__ import annotations

from typing import List

from logic.ai_contract import SuggestOutfitInput
from models.taxonomy import AI_GARMENT_TYPES, AI_SEASONS

GUARDRAIL_BULLETS: List[str] = [
    "Responde siempre en ESPAÑOL.",
    "Devuelve únicamente JSON que cumpla el esquema pedido, sin texto adicional.",
    "No inventes prendas: usa solo las que aparecen en la entrada.",
    "No incluyas datos personales ni URLs de imágenes en la respuesta.",
]


def system_instruction(role_hint: str) -> str:
    """Compose a consistent system prompt with boundary reminders."""

    boundary_text = "\n".join(f"- {bullet}" for bullet in GUARDRAIL_BULLETS)
    return f"Eres {role_hint}.\nSigue estas reglas antes de responder:\n{boundary_text}"


def _quoted(options: List[str]) -> str:
    return ", ".join(f'"{option}"' for option in options)


def autocomplete_prompt() -> str:
    """Instructions sent alongside the garment photo."""

    return (
        "Analiza la imagen de la prenda y devuelve un objeto JSON con estas claves:\n"
        '- "name": un nombre descriptivo y específico (ej. Camisa de lino a rayas).\n'
        f'- "type": OBLIGATORIO, exactamente uno de: {_quoted(AI_GARMENT_TYPES)}.\n'
        '- "color": el color predominante (ej. Azul marino, Estampado floral).\n'
        f'- "season": OBLIGATORIO, exactamente uno de: {_quoted(AI_SEASONS)}.\n'
        '- "fabric": el tejido principal (ej. Algodón, Lana, Denim).\n'
        "No omitas ningún campo."
    )


def _variety_hint(attempt_number: int | None) -> str:
    if not attempt_number:
        return "Ofrece alternativas distintas si se repite la misma ocasión."
    if attempt_number == 1:
        return "Esta es la primera sugerencia para esta ocasión."
    return (
        f"Este es el intento número {attempt_number} para esta ocasión: propone un atuendo "
        "claramente distinto a los anteriores."
    )


def suggestion_prompt(request: SuggestOutfitInput) -> str:
    """Render the outfit suggestion prompt for a validated request.

    Image references stay out of the prompt; the model refers to garments by id.
    """

    wardrobe_lines = "\n".join(
        f"- Prenda: ID={item.id}, Tipo={item.type}, Color={item.color}, "
        f"Temporada={item.season}, Material={item.material}"
        for item in request.wardrobe
    ) or "- (el armario está vacío)"

    return (
        "Sugiere un ATUENDO COMPLETO Y COHERENTE para la ocasión indicada usando solo "
        "las prendas del armario del usuario.\n"
        f"{_variety_hint(request.attempt_number)}\n\n"
        "Un atuendo completo suele tener una prenda superior, una inferior y calzado, "
        "más un accesorio opcional. Un 'Entero' (vestido, mono) cuenta como superior e inferior.\n\n"
        f"Ocasión: {request.occasion}\n\n"
        f"Prendas disponibles:\n{wardrobe_lines}\n\n"
        "Devuelve un objeto JSON con:\n"
        '- "outfitSuggestion": lista de prendas elegidas; cada una DEBE incluir su "id" '
        'original y, si es posible, "type", "color", "season" y "material".\n'
        '- "reasoning": explicación en español de por qué combinan, refiriéndote a las '
        "prendas por tipo y color, nunca por id. Si no es posible formar un atuendo, "
        "explica qué tipo de prendas faltan."
    )


__all__ = ["GUARDRAIL_BULLETS", "autocomplete_prompt", "suggestion_prompt", "system_instruction"]
