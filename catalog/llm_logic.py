# catalog/llm_logic.py
# All OpenAI logic for attribute enrichment lives here.
#  - AttributeEnricher takes an OpenAI client from the caller (see build_enricher)
#  - Vision mode (Responses API + input_image) when the product has usable images,
#    Chat Completions JSON mode otherwise
#  - Output is parsed as strict JSON and every field goes through the type validator

from __future__ import annotations

import json
import logging
import time
from typing import List, Sequence

from decouple import config
from openai import (
    APIConnectionError,
    BadRequestError,
    InternalServerError,
    OpenAI,
    OpenAIError,
    RateLimitError,
)

from catalog.utils import short_ref, valid_image_references
from catalog.validators import is_empty_value, validate_attribute_values

logger = logging.getLogger(__name__)

OPENAI_API_KEY = config("OPENAI_API_KEY", default="")
OPENAI_MODEL = config("OPENAI_MODEL", default="gpt-4o-mini")
OPENAI_VISION_MODEL = config("OPENAI_VISION_MODEL", default="gpt-4o-mini")
OPENAI_IMAGE_DETAIL = config("OPENAI_IMAGE_DETAIL", default="low")
OPENAI_MAX_RETRIES = config("OPENAI_MAX_RETRIES", default=3, cast=int)

_OPENAI_TEMP = 0.2

# Connection/timeouts, 429 and 5xx are worth another attempt; anything else is not.
_TRANSIENT_ERRORS = (APIConnectionError, RateLimitError, InternalServerError)

_SYS_PROMPT_ENRICH = (
    "You are a product data specialist who extracts and infers product attributes "
    "from basic information. Respond with a valid JSON object containing only the "
    "requested attributes. Be accurate and realistic in your assessments."
)

_TYPE_RULES = (
    "Respond with a single flat JSON object whose keys are exactly the attribute names above. "
    "For each attribute, follow these rules:\n"
    "- For SHORT_TEXT and LONG_TEXT: provide a string value\n"
    "- For RICH_TEXT: provide HTML content as a string\n"
    "- For NUMBER: provide a numeric value\n"
    "- For SINGLE_SELECT: select one option from the provided list\n"
    "- For MULTIPLE_SELECT: select appropriate options from the provided list as an array\n"
    '- For MEASURE: provide an object with "value" (number) and "unit" properties\n'
)

_EXAMPLE_RESPONSE = {
    "Item Weight": {"value": 150, "unit": "g"},
    "Ingredients": ["Wheat Flour", "Sugar", "Salt"],
    "Product Description": "<p>This is a premium product...</p>",
    "Storage Requirements": "Dry Storage",
    "Items per Package": 5,
}


class EnrichmentServiceError(Exception):
    """AI service failed, returned nothing, or returned something that is not a JSON object."""


def eligible_attributes(current: dict, attributes: Sequence) -> list:
    """Required attributes the product has no value for yet (absent, null, [] or {})."""
    return [a for a in attributes if a.is_required and is_empty_value(current.get(a.name))]


def _describe_attribute(attr) -> str:
    attr_type = getattr(attr.type, "value", attr.type)
    line = f"- {attr.name} (Type: {attr_type})"
    if attr.unit:
        line += f" with unit: {attr.unit}"
    if attr.options:
        line += f" with options: [{', '.join(attr.options)}]"
    return line


def build_enrichment_prompt(product, attributes: Sequence, *, image_count: int = 0) -> str:
    facts = [
        f"Product Name: {product.name}",
        f"Brand: {product.brand}",
        f"Barcode: {product.barcode or 'Unknown'}",
    ]
    if image_count:
        facts.append(f"Product Images: {image_count} attached")
    attribute_lines = "\n".join(_describe_attribute(a) for a in attributes)
    return (
        "I need to enrich the following product with additional attributes:\n\n"
        + "\n".join(facts)
        + "\n\nPlease extract or infer the following attributes:\n"
        + attribute_lines
        + "\n\n"
        + _TYPE_RULES
        + "\nExample response format:\n"
        + json.dumps(_EXAMPLE_RESPONSE, indent=2)
        + "\n\nBe realistic and accurate based on the product information provided. "
        "If you're not confident about an attribute, use null."
    )


def _parse_strict_json(raw: str) -> dict:
    """Strip code fences / a leading 'json' label and require a JSON object."""
    s = (raw or "").strip().strip("` \n")
    if s.lower().startswith("json"):
        s = s[4:].lstrip(":").strip()
    if not s:
        raise EnrichmentServiceError("AI service returned empty response")
    try:
        data = json.loads(s)
    except ValueError as e:
        raise EnrichmentServiceError("Failed to parse AI response as JSON") from e
    if not isinstance(data, dict):
        raise EnrichmentServiceError("AI response is not a JSON object")
    return data


class AttributeEnricher:
    def __init__(
        self,
        client: OpenAI,
        *,
        model: str = OPENAI_MODEL,
        vision_model: str = OPENAI_VISION_MODEL,
        image_detail: str = OPENAI_IMAGE_DETAIL,
        max_retries: int = OPENAI_MAX_RETRIES,
    ):
        self.client = client
        self.model = model
        self.vision_model = vision_model
        self.image_detail = image_detail
        self.max_retries = max(1, max_retries)

    def enrich(self, product, attributes: Sequence) -> dict:
        """
        Fill the product's missing required attributes.
        Returns the existing bag merged with the validated AI values (AI wins on
        key collision). Raises EnrichmentServiceError when the service fails.
        """
        current = dict(product.attributes or {})
        to_enrich = eligible_attributes(current, attributes)
        if not to_enrich:
            logger.info(f"[Enrich] product={product.id} nothing to enrich")
            return current

        images = valid_image_references(product.images)
        raw = self._request(product, to_enrich, images)
        data = _parse_strict_json(raw)
        validated = validate_attribute_values(data, to_enrich)
        logger.info(
            f"[Enrich OK] product={product.id} requested={len(to_enrich)} accepted={len(validated)}"
        )
        return {**current, **validated}

    # ---------------- request modes ----------------
    def _request(self, product, attributes: Sequence, images: List[str]) -> str:
        if images:
            prompt = build_enrichment_prompt(product, attributes, image_count=len(images))
            try:
                return self._with_retries(self._responses_call_vision, prompt, images)
            except BadRequestError as e:
                logger.warning(
                    f"[Enrich vision 400] product={product.id} images={[short_ref(i) for i in images]} "
                    f"err={e}; falling back to text-only"
                )
            except OpenAIError as e:
                raise EnrichmentServiceError(f"AI enrichment failed: {e}") from e

        prompt = build_enrichment_prompt(product, attributes)
        try:
            return self._with_retries(self._chat_call_text, prompt)
        except OpenAIError as e:
            raise EnrichmentServiceError(f"AI enrichment failed: {e}") from e

    def _with_retries(self, call, *args) -> str:
        last_err = None
        for attempt in range(1, self.max_retries + 1):
            try:
                return call(*args)
            except _TRANSIENT_ERRORS as e:
                last_err = e
                logger.warning(f"[Enrich attempt {attempt}/{self.max_retries}] {type(e).__name__}: {e}")
                if attempt < self.max_retries:
                    time.sleep(2 ** (attempt - 1))
        raise EnrichmentServiceError(
            f"AI enrichment failed after {self.max_retries} attempts: {last_err}"
        )

    def _chat_call_text(self, prompt: str) -> str:
        completion = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": _SYS_PROMPT_ENRICH},
                {"role": "user", "content": prompt},
            ],
            response_format={"type": "json_object"},
            temperature=_OPENAI_TEMP,
        )
        return completion.choices[0].message.content or ""

    def _responses_call_vision(self, prompt: str, images: List[str]) -> str:
        content = [{"type": "input_text", "text": prompt}]
        content += [
            {"type": "input_image", "image_url": ref, "detail": self.image_detail}
            for ref in images
        ]
        r = self.client.responses.create(
            model=self.vision_model,
            input=[
                {"role": "system", "content": [{"type": "input_text", "text": _SYS_PROMPT_ENRICH}]},
                {"role": "user", "content": content},
            ],
            text={"format": {"type": "json_object"}},
            temperature=_OPENAI_TEMP,
        )
        return getattr(r, "output_text", "") or ""


def build_enricher() -> AttributeEnricher:
    """Create the enricher from configuration; called once by the app at startup."""
    if not OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY is not set; enrichment calls will fail.")
    return AttributeEnricher(OpenAI(api_key=OPENAI_API_KEY))
