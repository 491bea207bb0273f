# app/services/analyzer.py
"""
Image analysis for new drafts.

Sends 1-8 photos (data URLs) to the OpenAI Responses API and normalizes the
JSON it returns into a draft listing for collectible crystals/minerals.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import Settings, get_settings
from app.core.enums import ItemCondition
from app.core.exceptions import AnalyzerError
from app.core.utils import positive_int_or_default

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_ID = "8822"  # Rocks, Fossils & Minerals
DEFAULT_TITLE = "Crystal / Mineral Specimen"
DEFAULT_DESCRIPTION = "Mineral specimen. See photos for details."
DEFAULT_PRICE = "9.99"

SYSTEM_PROMPT = "\n".join([
    "You are an expert eBay listing assistant for collectible crystals/rocks/minerals.",
    "You will be given 1-8 photos of the item.",
    "Extract any readable text (labels, stickers, measurements) and infer the item details.",
    "Generate a complete draft listing for eBay US marketplace.",
    "Focus on smart SEO: maximize search coverage while staying human, accurate, and not spammy.",
    "TITLE RULES (hard): <= 80 characters; no ALL CAPS; no emojis; no repeated keywords; no misleading terms.",
    "TITLE STRATEGY: start with the mineral name, then key descriptors (form/cut, color, grade), "
    "then size/weight if visible, then locality if known.",
    "DESCRIPTION RULES: output HTML string (no markdown). Lead with a 1-2 sentence summary, "
    "then a short bullet list of key facts, then a short shipping/handling note.",
    "If any critical info is unknown (weight, exact mineral ID, treatments), add a note in notes[] "
    "and phrase the description honestly (e.g. \"approximate\" / \"see photos\").",
    "Return STRICT JSON ONLY matching the schema, no markdown, no commentary.",
    "If you cannot infer a field, put a reasonable default and add a note explaining what the user must confirm.",
    f'Prefer categoryId "{DEFAULT_CATEGORY_ID}" unless the photos strongly indicate a different rocks/minerals category.',
])

SCHEMA_HINT = {
    "title": "string (SEO title, <= 80 chars)",
    "description": "string (HTML)",
    "categoryId": "string",
    "condition": "NEW|USED_EXCELLENT|USED_VERY_GOOD|USED_GOOD|USED_ACCEPTABLE",
    "price": 'string decimal like "12.99" (best guess; if unknown use "9.99" and add note)',
    "quantity": "number (default 1)",
    "specifics": "object map of item specifics (e.g. Mineral, Color, Weight, Size)",
    "confidence": "number 0..1",
    "notes": "string[]",
    "extractedText": "string (optional)",
    "pricingSignals": "{ tier:A|B|C, uniqueness:Standard|Standout, color_saturation:Vibrant|Muted, "
    "surface_quality:Polished|Rough, shipping_cost_usd:number|null } (optional; best-effort)",
}


@dataclass
class AnalyzedDraft:
    title: str
    description: str
    category_id: str
    condition: str
    price: str
    quantity: int = 1
    specifics: Dict[str, str] = field(default_factory=dict)
    confidence: float = 0.5
    notes: List[str] = field(default_factory=list)
    extracted_text: Optional[str] = None
    pricing_signals: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _text(value: Any, default: str) -> str:
    text = str(value).strip() if value is not None else ""
    return text or default


def normalize_draft(parsed: Dict[str, Any]) -> AnalyzedDraft:
    """Best-effort cleanup of the model's JSON; never fails on a missing field."""
    condition = parsed.get("condition")
    if condition not in {c.value for c in ItemCondition}:
        condition = ItemCondition.USED_GOOD.value

    specifics = parsed.get("specifics")
    specifics = (
        {str(k): str(v) for k, v in specifics.items() if v is not None}
        if isinstance(specifics, dict)
        else {}
    )
    notes = parsed.get("notes")
    confidence = parsed.get("confidence")
    signals = parsed.get("pricingSignals")

    return AnalyzedDraft(
        title=_text(parsed.get("title"), DEFAULT_TITLE),
        description=_text(parsed.get("description"), DEFAULT_DESCRIPTION),
        category_id=_text(parsed.get("categoryId"), DEFAULT_CATEGORY_ID),
        condition=condition,
        price=_text(parsed.get("price"), DEFAULT_PRICE),
        quantity=positive_int_or_default(parsed.get("quantity"), 1),
        specifics=specifics,
        confidence=confidence if isinstance(confidence, (int, float)) and not isinstance(confidence, bool) else 0.5,
        notes=[str(n) for n in notes] if isinstance(notes, list) else [],
        extracted_text=str(parsed["extractedText"]) if parsed.get("extractedText") else None,
        pricing_signals=signals if isinstance(signals, dict) else None,
    )


def extract_output_text(payload: Dict[str, Any]) -> Optional[str]:
    """Concatenated text output of a Responses API payload."""
    if isinstance(payload.get("output_text"), str) and payload["output_text"]:
        return payload["output_text"]

    parts = []
    for item in payload.get("output") or []:
        for content in (item or {}).get("content") or []:
            text = (content or {}).get("text")
            if text:
                parts.append(text)
    return "\n".join(parts) or None


class DraftAnalyzer:
    """Client for the external image analysis call."""

    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings or get_settings()
        self.transport = transport

    def _build_request(self, images: List[str]) -> Dict[str, Any]:
        max_images = self.settings.DRAFT_MAX_IMAGES
        return {
            "model": self.settings.OPENAI_MODEL,
            "input": [
                {"role": "system", "content": [{"type": "input_text", "text": SYSTEM_PROMPT}]},
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "input_text",
                            "text": f"Return JSON with keys exactly like this schema: {json.dumps(SCHEMA_HINT)}",
                        },
                        *({"type": "input_image", "image_url": url} for url in images[:max_images]),
                    ],
                },
            ],
            "temperature": 0.3,
            "max_output_tokens": 900,
            "text": {"format": {"type": "json_object"}},
        }

    async def analyze(self, images: List[str]) -> AnalyzedDraft:
        """
        Raises:
            AnalyzerError: missing API key, non-2xx response, or unusable output
        """
        api_key = (self.settings.OPENAI_API_KEY or "").strip()
        if not api_key:
            raise AnalyzerError("OPENAI_API_KEY is not set")

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=120.0) as client:
                response = await client.post(
                    self.settings.OPENAI_API_URL,
                    headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
                    json=self._build_request(images),
                )
        except httpx.RequestError as e:
            logger.error(f"Image analysis request failed: {str(e)}")
            raise AnalyzerError(f"Image analysis request failed: {str(e)}")

        if response.status_code < 200 or response.status_code >= 300:
            logger.error(f"Image analysis error (HTTP {response.status_code})")
            raise AnalyzerError(f"OpenAI error (HTTP {response.status_code}): {response.text[:4000]}")

        try:
            payload = response.json()
        except ValueError:
            raise AnalyzerError("OpenAI returned a non-JSON response")

        output_text = extract_output_text(payload) if isinstance(payload, dict) else None
        if not output_text:
            raise AnalyzerError("OpenAI response missing output_text")

        try:
            parsed = json.loads(output_text)
        except ValueError:
            raise AnalyzerError(f"OpenAI returned non-JSON output: {output_text[:4000]}")
        if not isinstance(parsed, dict):
            raise AnalyzerError("OpenAI output is not a JSON object")

        draft = normalize_draft(parsed)
        logger.info(f"Analyzed {min(len(images), self.settings.DRAFT_MAX_IMAGES)} image(s): {draft.title!r}")
        return draft
