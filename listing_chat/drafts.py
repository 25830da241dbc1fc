from __future__ import annotations

from typing import Any, Dict, Union

from telemetry.logging_utils import get_logger

from .categories import get_category
from .completion import CompletionClient, UpstreamError
from .models import EnhanceRequest, ListingDraftRequest
from .parsing import extract_json_object
from .prompts import build_enhance_messages, build_listing_draft_messages

logger = get_logger(__name__)

DRAFT_TEMPERATURE = 0.7
DRAFT_MAX_TOKENS = 1000


class UnknownCategoryError(ValueError):
    pass


class DraftParseError(ValueError):
    """The model replied, but not with a JSON object."""


def generate_listing_draft(
    request: ListingDraftRequest, client: CompletionClient
) -> Union[Dict[str, Any], UpstreamError]:
    """Ask the model for a complete listing draft in one shot."""
    schema = get_category(request.category)
    if schema is None:
        raise UnknownCategoryError(f"Unknown category: {request.category}")

    messages = build_listing_draft_messages(
        schema, request.description, request.price, request.location, request.imageCount
    )
    outcome = client.complete(
        messages,
        temperature=DRAFT_TEMPERATURE,
        max_tokens=DRAFT_MAX_TOKENS,
        component="listing_draft",
    )
    if outcome.error is not None:
        return outcome.error

    draft = extract_json_object(outcome.content)
    if draft is None:
        logger.warning("listing_draft_unparsed", extra={"category": schema.id, "reply_length": len(outcome.content or "")})
        raise DraftParseError("Failed to parse AI response")
    logger.info("listing_draft_complete", extra={"category": schema.id, "fields": len(draft)})
    return draft


ENHANCE_TEMPERATURE = 0.7
ENHANCE_MAX_TOKENS = 1000


def enhance_text(request: EnhanceRequest, client: CompletionClient) -> Union[Dict[str, Any], UpstreamError]:
    """Rewrite listing copy in the requested tone; a reply without ``text`` is returned as the text itself."""
    outcome = client.complete(
        build_enhance_messages(request.text, request.tone),
        temperature=ENHANCE_TEMPERATURE,
        max_tokens=ENHANCE_MAX_TOKENS,
        component="enhance",
    )
    if outcome.error is not None:
        return outcome.error

    enhanced = extract_json_object(outcome.content)
    if enhanced is None or not isinstance(enhanced.get("text"), str):
        logger.info("enhance_unparsed", extra={"reply_length": len(outcome.content or "")})
        return {"text": (outcome.content or "").strip()}
    return {"text": enhanced["text"]}
