from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional

from .categories import CategorySchema, get_category, render_category_block

OUTPUT_CONTRACT = """CRITICAL: Always respond with a single valid JSON object and nothing else, in this format:
{
  "message": "Your friendly response or question to the user",
  "extractedData": {
    // ONLY the fields that are new or changed in this turn
  },
  "isComplete": false or true,
  "nextSteps": "What information is still needed (optional)"
}
Use exactly these keys. "nextSteps" may be omitted.
Fields you already extracted are remembered for you; do not repeat them unless the value changed.
Set "isComplete" to true only once every required field has a value.
"""


def _render_extracted(extracted_data: Optional[Mapping[str, Any]]) -> str:
    return json.dumps(dict(extracted_data or {}), indent=2, sort_keys=True, ensure_ascii=False, default=str)


def _photo_count(image_count: Optional[int]) -> int:
    try:
        return max(0, int(image_count or 0))
    except (TypeError, ValueError):
        return 0


def build_system_prompt(
    category: Optional[str],
    image_count: Optional[int],
    extracted_data: Optional[Mapping[str, Any]] = None,
) -> str:
    """System prompt for one conversation turn. Pure; never raises on odd inputs."""
    schema = get_category(category)
    label = schema.label if schema else (category or "new")
    framing = (
        f"You are a friendly AI assistant helping users create a {label} listing. "
        f"You have access to {_photo_count(image_count)} photos they've uploaded.\n\n"
        "Your job is to:\n"
        "1. Have a natural conversation to gather listing information\n"
        "2. Ask follow-up questions to get missing details, one or two at a time\n"
        "3. Extract structured data from the conversation\n"
        "4. Be conversational and helpful, not robotic\n"
        "Reply in the same language the user writes in.\n\n"
    )
    current = f"Current extracted data: {_render_extracted(extracted_data)}\n\n"
    return framing + OUTPUT_CONTRACT + "\n" + current + render_category_block(category)


def _draft_field_hint(schema: CategorySchema) -> Dict[str, str]:
    hints: Dict[str, str] = {
        "title": "catchy title max 60 chars",
        "description": "detailed 2-3 paragraph description highlighting the best features",
    }
    for spec in schema.required_fields + schema.important_fields:
        if spec.name in hints:
            continue
        if spec.allowed_values:
            hints[spec.name] = "|".join(spec.allowed_values)
        elif spec.type in ("integer", "number"):
            hints[spec.name] = "number or null"
        elif spec.type == "boolean":
            hints[spec.name] = "boolean"
        elif spec.type == "array":
            hints[spec.name] = "list of strings"
        else:
            hints[spec.name] = f"{spec.name.replace('_', ' ')} or null"
    return hints


def build_listing_draft_messages(
    schema: CategorySchema,
    description: str,
    price: Optional[Any],
    location: Optional[str],
    image_count: Optional[int],
) -> List[Dict[str, str]]:
    """One-shot prompt asking the model to draft a whole listing as JSON."""
    system = (
        "You are an expert marketplace listing creator. Generate compelling, accurate listings that "
        "attract renters and buyers. Always respond with valid JSON only, no markdown or extra text."
    )
    template = json.dumps(_draft_field_hint(schema), indent=2, ensure_ascii=False)
    user = (
        f"Create a {schema.label} listing with this info:\n"
        f"Description: {description or ''}\n"
        f"Price: {price if price is not None else ''}\n"
        f"Location: {location or ''}\n"
        f"Photos: {_photo_count(image_count)} uploaded\n\n"
        f"Return JSON with these fields:\n{template}"
    )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]


def build_enhance_messages(text: str, tone: str) -> List[Dict[str, str]]:
    system = (
        f"You are a premium copywriter. Rewrite the user's listing text so it sounds more {tone}, "
        "keeping every fact unchanged. Always respond with valid JSON only."
    )
    user = f"Enhance: {json.dumps(text, ensure_ascii=False)}\n\nReturn JSON:\n" + '{\n  "text": "enhanced version"\n}'
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]
