"""
Invoice Extraction Client

Two chat-completions calls against the extraction API:
1. transcribe_document: base64 document -> raw text (vision model)
2. extract_invoice_fields: raw text -> structured invoice fields (text model, JSON output)
"""

import base64
import json
from typing import Any
from typing import Dict
from typing import Optional

import httpx
from loguru import logger
from pydantic import BaseModel

from ledger_api.errors import ExtractionError
from ledger_api.ledger.editors import parse_amount

EXTRACTION_TIMEOUT = 120.0

TRANSCRIBE_PROMPT = """
Extract all the text content from this PDF invoice.
Output only the raw text content without any additional commentary.
"""

EXTRACT_PROMPT = """
Extract the following information from this invoice:
1. Invoice Number
2. Description or Items (summarize if multiple)
3. Total Amount
4. Vendor/Contractor Name
5. Vendor Email (if available)
6. Vendor Phone (if available)

Format the response as a JSON object with the following keys:
invoiceNumber, description, amount (as a number), vendorName, vendorEmail, vendorPhone

Invoice text:
{invoice_text}
"""

DEFAULT_INVOICE_NUMBER = "Unknown"
DEFAULT_DESCRIPTION = "No description"
DEFAULT_VENDOR_NAME = "Unknown Vendor"


class ExtractedInvoice(BaseModel):
    invoice_number: str = DEFAULT_INVOICE_NUMBER
    description: str = DEFAULT_DESCRIPTION
    amount: float = 0.0
    vendor_name: str = DEFAULT_VENDOR_NAME
    vendor_email: Optional[str] = None
    vendor_phone: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ExtractedInvoice":
        """Build from the model's JSON, replacing missing or empty values with the defaults."""

        def text(key: str) -> Optional[str]:
            value = payload.get(key)
            if value is None:
                return None
            value = str(value).strip()
            return value or None

        return cls(
            invoice_number=text("invoiceNumber") or DEFAULT_INVOICE_NUMBER,
            description=text("description") or DEFAULT_DESCRIPTION,
            amount=parse_amount(payload.get("amount")),
            vendor_name=text("vendorName") or DEFAULT_VENDOR_NAME,
            vendor_email=text("vendorEmail"),
            vendor_phone=text("vendorPhone"),
        )


class ExtractionClient:
    """
    Client for the chat-completions extraction API.

    Args:
        api_url: Full chat-completions endpoint URL
        api_key: Bearer key
        text_model: Model for structured extraction
        vision_model: Model for document transcription
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        api_url: str,
        api_key: Optional[str],
        text_model: str,
        vision_model: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.text_model = text_model
        self.vision_model = vision_model
        self._transport = transport

    async def _complete(self, payload: Dict[str, Any], failure_message: str) -> str:
        """POST one chat-completions request and return the first choice's content."""
        if not self.api_key:
            raise ExtractionError("Invoice extraction is not configured")

        try:
            async with httpx.AsyncClient(timeout=EXTRACTION_TIMEOUT, transport=self._transport) as client:
                response = await client.post(
                    self.api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
        except httpx.HTTPError as e:
            logger.error("Extraction API unreachable", model=payload.get("model"), error=str(e))
            raise ExtractionError(failure_message) from e

        if response.is_error:
            logger.error(
                f"Extraction API error: {response.status_code}",
                model=payload.get("model"),
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise ExtractionError(failure_message)

        try:
            return response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error("Unexpected extraction API response", model=payload.get("model"), error=str(e))
            raise ExtractionError(failure_message) from e

    async def transcribe_document(self, content: bytes, content_type: str = "application/pdf") -> str:
        """Transcribe a document to raw text."""
        encoded = base64.b64encode(content).decode("ascii")
        payload = {
            "model": self.vision_model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": TRANSCRIBE_PROMPT},
                        {"type": "image_url", "image_url": {"url": f"data:{content_type};base64,{encoded}"}},
                    ],
                }
            ],
        }
        text = await self._complete(payload, "Failed to extract text from PDF")
        logger.info("Document transcribed", characters=len(text or ""))
        return text or ""

    async def extract_invoice_fields(self, invoice_text: str) -> ExtractedInvoice:
        """Extract the fixed invoice fields from transcribed text."""
        payload = {
            "model": self.text_model,
            "messages": [{"role": "user", "content": EXTRACT_PROMPT.format(invoice_text=invoice_text)}],
            "response_format": {"type": "json_object"},
        }
        content = await self._complete(payload, "Failed to process invoice data")

        try:
            data = json.loads(content)
        except (TypeError, json.JSONDecodeError) as e:
            logger.error("Extraction result is not JSON", error=str(e))
            raise ExtractionError("Failed to process invoice data") from e
        if not isinstance(data, dict):
            raise ExtractionError("Failed to process invoice data")

        extracted = ExtractedInvoice.from_payload(data)
        logger.info(
            "Invoice fields extracted",
            invoice_number=extracted.invoice_number,
            vendor_name=extracted.vendor_name,
            amount=extracted.amount,
        )
        return extracted
