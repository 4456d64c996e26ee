"""Quote extraction — prompt, response schema, and parsing of model output.

This module contains:
- The JSON schema the model is asked to fill
- The fixed system prompt and the per-RFQ user prompt
- Parsing of the raw answer into a validated QuoteExtraction
- extract_quote(), the adapter entry point used by routers and workers
"""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any

import structlog
from pydantic import ValidationError

from quoterecon.config import settings
from quoterecon.errors import MalformedExtractionError
from quoterecon.schemas.common import RequestedItem
from quoterecon.schemas.extraction import DocumentRef, QuoteExtraction
from quoterecon.services.document_loader import load_document_parts
from quoterecon.services.openai_client import call_openai_json

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# JSON schema for the model answer
# ---------------------------------------------------------------------------

QUOTE_EXTRACTION_SCHEMA = {
    "type": "object",
    "properties": {
        "supplierInfo": {
            "type": "object",
            "properties": {
                "companyName": {"type": ["string", "null"]},
                "quoteNumber": {"type": ["string", "null"]},
                "quoteDate": {"type": ["string", "null"]},
                "validUntil": {"type": ["string", "null"]},
                "subtotal": {"type": ["number", "null"]},
                "shipping": {"type": ["number", "null"]},
                "taxes": {"type": ["number", "null"]},
                "total": {"type": ["number", "null"]},
            },
        },
        "extractedItems": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "productName": {"type": "string"},
                    "productNameOriginal": {"type": ["string", "null"]},
                    "sku": {"type": ["string", "null"]},
                    "quantity": {"type": ["number", "null"]},
                    "unitPrice": {"type": ["number", "null"]},
                    "totalPrice": {"type": ["number", "null"]},
                    "brand": {"type": ["string", "null"]},
                    "description": {"type": ["string", "null"]},
                    "leadTime": {"type": ["string", "null"]},
                    "alternateProduct": {"type": ["boolean", "null"]},
                    "alternateNotes": {"type": ["string", "null"]},
                },
                "required": ["productName"],
            },
        },
        "notes": {"type": ["string", "null"]},
    },
    "required": ["supplierInfo", "extractedItems"],
}


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = """You are an expert at reading supplier quotes and invoices. The document may be in French or English.

TASK:
1. Extract ALL line items from the quote document.
2. For each item extract: product name (translated to English if needed), SKU/model number/product code, quantity, unit price, total price, brand, description and lead time.
3. If the supplier proposes a substitute for a requested product, set alternateProduct to true and explain in alternateNotes.
4. Extract the header: supplier company name, quote number, quote date, validity date, subtotal, shipping/delivery/freight, taxes and grand total.

RULES:
- Prices are numbers only, without currency symbols.
- SKUs, model numbers and product codes are critical for matching; always look for them near the product name.
- If a field is not visible or unclear, set it to null. Only extract what you can clearly read.
- Include ALL line items, even accessories or small items, and items that were not requested.

Respond with a single JSON object matching this schema:
""" + json.dumps(QUOTE_EXTRACTION_SCHEMA, indent=2)


def build_user_prompt(requested: list[RequestedItem]) -> str:
    """List the requested items so the model can recognise matching products."""
    lines = []
    for item in requested:
        line = f"- {item.item_name}"
        if item.sku:
            line += f" (SKU: {item.sku})"
        if item.brand:
            line += f" by {item.brand}"
        line += f" - Qty: {item.quantity}"
        lines.append(line)
    listing = "\n".join(lines) if lines else "(no items listed)"
    return (
        "Please extract all line items and information from this supplier quote document.\n\n"
        "These are the items we requested (for reference only):\n"
        f"{listing}\n\n"
        "Extract everything in the quote, including items that are not in our request."
    )


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


def _named_items(items: Any) -> Any:
    """Drop lines the model returned without a product name."""
    if not isinstance(items, list):
        return items
    named = [i for i in items if not isinstance(i, dict) or str(i.get("productName") or "").strip()]
    if len(named) < len(items):
        logger.warning("extraction_nameless_items_dropped", dropped=len(items) - len(named))
    return named


def parse_extraction(raw_text: str | None) -> QuoteExtraction:
    """Parse the model answer into a QuoteExtraction.

    Accepts bare JSON or JSON inside a markdown code fence. Lines without a
    product name are dropped with a warning; anything else that is not a JSON
    object of the expected shape raises MalformedExtractionError.
    """
    if not raw_text or not raw_text.strip():
        raise MalformedExtractionError("Empty extraction response")

    text = raw_text.strip()
    fenced = _FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("extraction_json_invalid", error=str(exc), preview=text[:200])
        raise MalformedExtractionError() from exc

    if not isinstance(data, dict):
        raise MalformedExtractionError("Extraction response is not a JSON object")

    if "extractedItems" in data:
        data["extractedItems"] = _named_items(data["extractedItems"])

    try:
        extraction = QuoteExtraction.model_validate(data)
    except ValidationError as exc:
        logger.warning("extraction_shape_invalid", errors=exc.error_count())
        raise MalformedExtractionError() from exc

    logger.info(
        "extraction_parsed",
        items=len(extraction.extracted_items),
        supplier=extraction.supplier_info.company_name,
    )
    return extraction


# ---------------------------------------------------------------------------
# Adapter entry point
# ---------------------------------------------------------------------------

async def extract_quote(
    document: DocumentRef,
    requested: list[RequestedItem],
) -> QuoteExtraction:
    """Read a supplier quote document into structured line items.

    Raises an ExtractionError subclass on any failure; never returns a
    partial result.
    """
    # PDF parsing and page rendering are blocking
    parts, has_images = await asyncio.to_thread(load_document_parts, document)
    model = settings.openai_vision_model if has_images else settings.openai_text_model

    messages = [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": [{"type": "text", "text": build_user_prompt(requested)}, *parts]},
    ]
    raw_text = await call_openai_json(messages, model=model)
    return parse_extraction(raw_text)
