"""
AI autofill for required item specifics.

Asks the text-generation service once for values of every required aspect the
listing has not filled yet, then runs each answer through coercion. Anything
that goes wrong (provider error, unparseable reply, unmatched value) leaves the
aspect in still_missing; nothing is raised to the caller.
"""

import json
import logging
import re
from typing import Dict, Any, List, Optional

from schemas import AspectDefinition, AspectMode, AutofillInput, AutofillResult
from integrations.ebay.coercion import coerce

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = "You are a precise eBay listing assistant. Return only valid JSON."
MAX_PROMPT_VALUES = 30
NOT_AVAILABLE = "N/A"

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def unfilled_aspects(required: List[AspectDefinition], current: Dict[str, str]) -> List[AspectDefinition]:
    return [a for a in required if not (current.get(a.name) or "").strip()]


def _describe_aspect(aspect: AspectDefinition) -> str:
    if aspect.mode == AspectMode.SELECTION_ONLY and aspect.allowed_values:
        shown = aspect.allowed_values[:MAX_PROMPT_VALUES]
        extra = len(aspect.allowed_values) - len(shown)
        suffix = f" ({extra} more options)" if extra > 0 else ""
        return f'- "{aspect.name}" (MUST be one of: {", ".join(shown)}{suffix})'
    return f'- "{aspect.name}" (free text)'


def build_autofill_prompt(data: AutofillInput, aspects: List[AspectDefinition]) -> str:
    vision_lines: List[str] = []
    vision = data.vision
    if vision:
        if vision.detected_brand and vision.detected_brand.value:
            vision_lines.append(f"Brand: {vision.detected_brand.value}")
        if vision.detected_category and vision.detected_category.value:
            vision_lines.append(f"Detected item type: {vision.detected_category.value}")
        if vision.detected_color and vision.detected_color.value:
            vision_lines.append(f"Color: {vision.detected_color.value}")
        for attr in vision.detected_attributes:
            vision_lines.append(f"{attr.key}: {attr.value}")

    vision_block = ("\nVision-detected attributes:\n" + "\n".join(vision_lines)) if vision_lines else ""
    aspect_lines = "\n".join(_describe_aspect(a) for a in aspects)

    return f"""You are filling in required eBay item specifics for a listing.

Category: {data.category_name} (ID: {data.category_id})
Title: {data.title}
Description: {data.description}
{vision_block}

Fill in EACH of the following required item specifics. For fields marked "MUST be one of", you MUST pick the closest matching value from the provided list. For "free text" fields, provide your best guess.

Required fields to fill:
{aspect_lines}

Respond with ONLY a JSON object mapping aspect names to values. Example:
{{"Department": "Men", "Size": "L", "Color": "Black"}}

If you truly cannot determine a value, use "N/A" for free text fields. For selection fields, pick the most likely value based on the listing context.

JSON:"""


def extract_json_object(text: Optional[str]) -> Dict[str, Any]:
    """
    Lenient parse of the first {...} span in an LLM reply.

    Prose or markdown fences around the object are tolerated. Returns {} when
    there is no object or it does not parse.
    """
    if not text:
        return {}
    match = _JSON_OBJECT_RE.search(text)
    if not match:
        return {}
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.warning(f"[Autofill] Could not parse LLM response as JSON: {e}")
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _lookup(parsed: Dict[str, Any], name: str) -> Optional[str]:
    value = parsed.get(name)
    if value is None:
        lowered = name.lower()
        key = next((k for k in parsed if k.lower() == lowered), None)
        value = parsed.get(key) if key is not None else None
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


class AutofillService:
    """Fills required item specifics with one text-generation call."""

    def __init__(self, text_generator):
        """
        Args:
            text_generator: object with generate(prompt, system_instruction) -> str
        """
        self.text_generator = text_generator

    def autofill(self, data: AutofillInput) -> AutofillResult:
        current = dict(data.current_item_specifics)
        pending = unfilled_aspects(data.required_aspects, current)
        if not pending:
            logger.info("[Autofill] All required aspects already filled")
            return AutofillResult(item_specifics=current)

        names = [a.name for a in pending]
        logger.info(f"[Autofill] Filling {len(pending)} unfilled required aspects: {', '.join(names)}")

        prompt = build_autofill_prompt(data, pending)
        try:
            reply = self.text_generator.generate(prompt, SYSTEM_INSTRUCTION)
        except Exception as e:
            logger.error(f"[Autofill] LLM call failed: {e}")
            return AutofillResult(item_specifics=current, still_missing=names)

        parsed = extract_json_object(reply)

        filled_by_ai: List[str] = []
        still_missing: List[str] = []
        for aspect in pending:
            raw = _lookup(parsed, aspect.name)
            if raw is None or not raw.strip() or raw.strip() == NOT_AVAILABLE:
                still_missing.append(aspect.name)
                continue

            if aspect.mode == AspectMode.SELECTION_ONLY and aspect.allowed_values:
                value = coerce(raw, aspect.allowed_values)
                if value is None:
                    logger.warning(f'[Autofill] LLM value "{raw}" for "{aspect.name}" does not match any allowed value')
                    still_missing.append(aspect.name)
                    continue
            else:
                value = raw

            current[aspect.name] = value
            filled_by_ai.append(aspect.name)

        logger.info(f"[Autofill] Filled {len(filled_by_ai)} aspects by AI: {', '.join(filled_by_ai) or 'none'}")
        if still_missing:
            logger.info(f"[Autofill] Still missing: {', '.join(still_missing)}")

        return AutofillResult(item_specifics=current, filled_by_ai=filled_by_ai, still_missing=still_missing)
