"""Google Gemini extractor — reads pick lists ("material issue notes") with structured output.

The document bytes are sent inline with their MIME type together with an
instruction prompt and a response schema, so the model answers with the draft
JSON directly.

Environment:
    GEMINI_API_KEY — API key for Google AI Studio
    GEMINI_MODEL   — model name (default gemini-2.5-flash)
"""

import structlog
from google import genai
from google.genai import errors, types
from pydantic import ValidationError as DraftValidationError

from picking.extraction.port import (
    DocumentExtractor,
    ExtractionError,
    ExtractionQuotaExceeded,
    OrderDraft,
)

logger = structlog.get_logger(__name__)

_PROMPT = """
You are an intelligent document processing system. Analyze the provided document,
which is a material issue note used to pick goods in a warehouse, and extract the
order details. Identify the main order information and all the line items.
Return the data as JSON that strictly adheres to the provided schema.
- 'orderId' is the order number.
- 'requester' is the person who requested the material.
- 'destinationSector' is the destination sector.
- For each item extract 'itemNo' (item number), 'code' (product code),
  'description' (material description), 'location' (location and lot),
  'quantityOrdered' (requested quantity) and 'unit' (packaging unit).
- Convert numeric values such as quantities to numbers, not strings.
"""

_ITEM_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "itemNo": {"type": "STRING", "description": "Item number"},
        "code": {"type": "STRING", "description": "Product code"},
        "description": {"type": "STRING", "description": "Full material description"},
        "location": {"type": "STRING", "description": "Location and lot"},
        "quantityOrdered": {"type": "NUMBER", "description": "Requested quantity"},
        "unit": {"type": "STRING", "description": "Packaging unit"},
    },
    "required": ["itemNo", "code", "description", "location", "quantityOrdered", "unit"],
}

_ORDER_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "orderId": {"type": "STRING", "description": "Order number"},
        "requester": {"type": "STRING", "description": "Requester name"},
        "destinationSector": {"type": "STRING", "description": "Destination sector"},
        "items": {"type": "ARRAY", "description": "Order line items", "items": _ITEM_SCHEMA},
    },
    "required": ["orderId", "requester", "destinationSector", "items"],
}


def _is_quota_error(exc: errors.APIError) -> bool:
    return exc.code == 429 or "RESOURCE_EXHAUSTED" in str(exc)


class GeminiExtractor(DocumentExtractor):
    """Production extractor backed by the Gemini generate-content API."""

    def __init__(self, api_key: str, model: str = "gemini-2.5-flash", client=None) -> None:
        self.api_key = api_key
        self.model = model
        self._client = client

    @property
    def client(self):
        """Return (or lazily create) the genai client."""
        if self._client is None:
            if not self.api_key:
                raise ExtractionError("GEMINI_API_KEY is not configured")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def extract(self, content: bytes, mime_type: str) -> OrderDraft:
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=[
                    _PROMPT,
                    types.Part.from_bytes(data=content, mime_type=mime_type),
                ],
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=_ORDER_SCHEMA,
                ),
            )
        except errors.APIError as exc:
            if _is_quota_error(exc):
                logger.warning("Gemini quota exhausted", model=self.model, code=exc.code)
                raise ExtractionQuotaExceeded("Extraction quota exceeded, try again later") from exc
            logger.error("Gemini extraction request failed", model=self.model, code=exc.code)
            raise ExtractionError(f"Extraction request failed: {exc}") from exc

        payload = (response.text or "").strip()
        try:
            return OrderDraft.model_validate_json(payload)
        except DraftValidationError as exc:
            logger.error("Gemini returned an invalid draft", model=self.model, payload=payload[:500])
            raise ExtractionError("The extraction model returned an invalid data format") from exc
