"""Tests for quote extraction parsing and the extraction adapter."""

import asyncio
import json
import threading

import pytest

from quoterecon.config import settings
from quoterecon.errors import (
    ExtractionNotConfiguredError,
    MalformedExtractionError,
    UnreadableDocumentError,
)
from quoterecon.schemas.common import ExtractedItem, RequestedItem, coerce_number
from quoterecon.schemas.extraction import DocumentRef
from quoterecon.services import quote_extraction
from quoterecon.services.document_loader import load_document_parts
from quoterecon.services.openai_client import call_openai_json
from quoterecon.services.quote_extraction import build_user_prompt, extract_quote, parse_extraction


def _make_answer(**overrides) -> str:
    data = {
        "supplierInfo": {"companyName": "Maison Bois", "quoteNumber": 4471, "total": "$1,180.00"},
        "extractedItems": [
            {
                "productName": "Sofa",
                "productNameOriginal": "Canapé",
                "sku": "ABC-123",
                "quantity": "2 pcs",
                "unitPrice": "$500.00",
                "totalPrice": 1000,
                "alternateProduct": False,
            }
        ],
        "notes": "Prices valid 30 days",
    }
    data.update(overrides)
    return json.dumps(data)


class TestParseExtraction:
    def test_plain_json(self):
        extraction = parse_extraction(_make_answer())
        assert extraction.supplier_info.company_name == "Maison Bois"
        assert extraction.supplier_info.quote_number == "4471"
        assert extraction.supplier_info.total == 1180.0
        item = extraction.extracted_items[0]
        assert item.product_name == "Sofa"
        assert item.product_name_original == "Canapé"
        assert item.quantity == 2
        assert item.unit_price == 500.0
        assert item.total_price == 1000.0
        assert extraction.notes == "Prices valid 30 days"

    def test_code_fence(self):
        extraction = parse_extraction(f"```json\n{_make_answer()}\n```")
        assert len(extraction.extracted_items) == 1

    def test_null_sections(self):
        extraction = parse_extraction(json.dumps({"supplierInfo": None, "extractedItems": None}))
        assert extraction.extracted_items == []
        assert extraction.supplier_info.company_name is None

    def test_unreadable_numbers_become_none(self):
        answer = _make_answer(extractedItems=[{"productName": "Lamp", "unitPrice": "TBD", "quantity": None}])
        item = parse_extraction(answer).extracted_items[0]
        assert item.unit_price is None
        assert item.quantity is None

    def test_empty_response(self):
        with pytest.raises(MalformedExtractionError):
            parse_extraction("   ")

    def test_not_json(self):
        with pytest.raises(MalformedExtractionError):
            parse_extraction("I could not read this quote, sorry.")

    def test_not_an_object(self):
        with pytest.raises(MalformedExtractionError):
            parse_extraction("[1, 2, 3]")

    def test_nameless_items_dropped(self):
        """A line without a product name is skipped, the rest of the quote is kept."""
        answer = _make_answer(extractedItems=[
            {"sku": "ABC"},
            {"productName": "  ", "unitPrice": 5},
            {"productName": "Lamp", "unitPrice": 40},
        ])
        extraction = parse_extraction(answer)
        assert [i.product_name for i in extraction.extracted_items] == ["Lamp"]

    def test_every_nullable_field_null(self):
        answer = json.dumps({
            "supplierInfo": {
                "companyName": None,
                "quoteNumber": None,
                "quoteDate": None,
                "validUntil": None,
                "subtotal": None,
                "shipping": None,
                "taxes": None,
                "total": None,
            },
            "extractedItems": [{
                "productName": "Sofa",
                "productNameOriginal": None,
                "sku": None,
                "quantity": None,
                "unitPrice": None,
                "totalPrice": None,
                "brand": None,
                "description": None,
                "leadTime": None,
                "alternateProduct": None,
                "alternateNotes": None,
            }],
            "notes": None,
        })
        extraction = parse_extraction(answer)
        item = extraction.extracted_items[0]
        assert item.product_name == "Sofa"
        assert item.alternate_product is False
        assert item.unit_price is None
        assert extraction.supplier_info.total is None

    def test_alternate_flag_kept(self):
        answer = _make_answer(extractedItems=[
            {"productName": "Sofa", "alternateProduct": True, "alternateNotes": "Grey fabric"},
        ])
        item = parse_extraction(answer).extracted_items[0]
        assert item.alternate_product is True
        assert item.alternate_notes == "Grey fabric"


class TestPrompt:
    def test_lists_requested_items(self):
        prompt = build_user_prompt([
            RequestedItem(id="r1", item_name="Sofa", quantity=2, sku="ABC123", brand="Acme"),
        ])
        assert "- Sofa (SKU: ABC123) by Acme - Qty: 2" in prompt

    def test_empty_request(self):
        assert "(no items listed)" in build_user_prompt([])


class TestDocumentLoading:
    def test_image_url_passed_through(self):
        parts, has_images = load_document_parts(DocumentRef(url="https://example.com/quote.png"))
        assert has_images is True
        assert parts[0]["image_url"]["url"] == "https://example.com/quote.png"

    def test_pdf_url_rejected(self):
        with pytest.raises(UnreadableDocumentError):
            load_document_parts(DocumentRef(url="https://example.com/quote.pdf"))

    def test_uploaded_image_sent_as_data_url(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "storage_base_path", str(tmp_path))
        uploads = tmp_path / "uploads"
        uploads.mkdir()
        (uploads / "f1.png").write_bytes(b"\x89PNG fake")

        parts, has_images = load_document_parts(DocumentRef(file_id="f1"))
        assert has_images is True
        assert parts[0]["image_url"]["url"].startswith("data:image/png;base64,")

    def test_unknown_upload(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "storage_base_path", str(tmp_path))
        with pytest.raises(FileNotFoundError):
            load_document_parts(DocumentRef(file_id="missing"))

    def test_document_ref_needs_a_source(self):
        with pytest.raises(ValueError):
            DocumentRef()


class TestExtractQuote:
    def test_uses_vision_model_for_images(self, monkeypatch):
        calls = []

        async def fake_call(messages, model=None):
            calls.append((messages, model))
            return _make_answer()

        monkeypatch.setattr(quote_extraction, "call_openai_json", fake_call)
        extraction = asyncio.run(extract_quote(
            DocumentRef(url="https://example.com/quote.jpg"),
            [RequestedItem(id="r1", item_name="Sofa", quantity=2)],
        ))

        assert extraction.extracted_items[0].sku == "ABC-123"
        messages, model = calls[0]
        assert model == settings.openai_vision_model
        assert messages[0]["role"] == "system"
        assert messages[1]["content"][1]["type"] == "image_url"

    def test_malformed_answer_raises(self, monkeypatch):
        async def fake_call(messages, model=None):
            return "not json"

        monkeypatch.setattr(quote_extraction, "call_openai_json", fake_call)
        with pytest.raises(MalformedExtractionError):
            asyncio.run(extract_quote(DocumentRef(url="https://example.com/quote.jpg"), []))

    def test_not_configured(self, monkeypatch):
        monkeypatch.setattr(settings, "openai_api_key", "")
        with pytest.raises(ExtractionNotConfiguredError) as exc_info:
            asyncio.run(call_openai_json([{"role": "user", "content": "hi"}]))
        assert exc_info.value.code == "not-configured"

    def test_document_loaded_off_the_event_loop(self, monkeypatch):
        loader_threads = []

        def fake_loader(document):
            loader_threads.append(threading.current_thread())
            return [{"type": "text", "text": "Sofa 2 x 500.00"}], False

        async def fake_call(messages, model=None):
            return _make_answer()

        monkeypatch.setattr(quote_extraction, "load_document_parts", fake_loader)
        monkeypatch.setattr(quote_extraction, "call_openai_json", fake_call)
        asyncio.run(extract_quote(DocumentRef(file_id="f1"), []))

        assert loader_threads
        assert loader_threads[0] is not threading.main_thread()


class TestNumberCoercion:
    def test_french_decimal_comma(self):
        item = ExtractedItem(product_name="Canapé", unit_price="12,50 $", total_price="1 250,00 $")
        assert item.unit_price == 12.5
        assert item.total_price == 1250.0

    def test_non_breaking_space_grouping(self):
        assert coerce_number("1\u00a0250,00\u00a0$") == 1250.0
        assert coerce_number("1\u202f250,00") == 1250.0

    def test_english_format(self):
        assert coerce_number("$1,250.00") == 1250.0
        assert coerce_number("1,250") == 1250.0
        assert coerce_number("19.99") == 19.99

    def test_dot_grouping_with_decimal_comma(self):
        assert coerce_number("1.250,75") == 1250.75
        assert coerce_number("1.250.000") == 1250000.0

    def test_quantity_with_unit(self):
        assert coerce_number("2 pcs") == 2.0

    def test_unreadable(self):
        assert coerce_number("TBD") is None
        assert coerce_number(None) is None
        assert coerce_number(True) is None
