"""LLM collaborator: spending insights and receipt scanning.

Both calls go through the OpenAI Responses API with a strict JSON Schema
``text.format`` and are validated into pydantic models before anything is
returned. Any failure (no API key, network or API error, malformed JSON,
schema violation) is logged at ERROR and reported as ``None``; callers decide
what to do and nothing here touches the store.

Configuration
-------------
- ``OPENAI_API_KEY``: read by the SDK client.
- ``FINTRACK_OPENAI_MODEL``: model name override (default ``gpt-5``).
"""

from __future__ import annotations

import base64
import json
import os
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from dateutil import parser as date_parser
from openai import OpenAI
from pydantic import TypeAdapter

from . import prompting
from .logging_setup import get_logger
from .models import (
    Category,
    FinancialInsight,
    PaymentMethod,
    ReceiptScanResult,
    Transaction,
    TransactionType,
)

_DEFAULT_MODEL: str = "gpt-5"

FALLBACK_CATEGORY_ID = "10"
FALLBACK_PAYMENT_METHOD_ID = "p1"

_INSIGHTS = TypeAdapter(list[FinancialInsight])

_logger = get_logger("fintrack.insights")


def _model() -> str:
    return os.getenv("FINTRACK_OPENAI_MODEL") or _DEFAULT_MODEL


def _create_client() -> OpenAI:
    return OpenAI()


def _extract_response_json_mapping(resp: Any) -> Mapping[str, Any]:
    """Decode the JSON object from a Responses SDK result.

    Prefers ``resp.output_text`` and falls back to
    ``resp.output[0].content[0].text``. Raises ``ValueError`` when no text is
    found or it is not a JSON object.
    """

    text: str | None = getattr(resp, "output_text", None)
    if not text:
        try:
            first = resp.output[0] if getattr(resp, "output", None) else None
            content = getattr(first, "content", None)
            if content:
                txt_obj = getattr(content[0], "text", None)
                text = txt_obj if isinstance(txt_obj, str) else getattr(txt_obj, "value", None)
        except Exception:  # noqa: BLE001 - tolerate SDK shape differences
            text = None
    if not text or not isinstance(text, str):
        raise ValueError("Unexpected Responses API shape; unable to locate text output")

    try:
        decoded = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError("Model output was not valid JSON per the requested schema") from e
    if not isinstance(decoded, Mapping):
        raise ValueError("Model output was not a JSON object")
    return decoded


# ---- Insights ----------------------------------------------------------------


def analyze_finances(
    transactions: Sequence[Transaction], categories: Sequence[Category]
) -> list[FinancialInsight] | None:
    """Ask the model for spending insights over ``transactions``.

    Returns the validated insights, or ``None`` on any failure.
    """

    payload = prompting.serialize_transactions(transactions, categories)
    try:
        client = _create_client()
        resp = client.responses.create(
            model=_model(),
            instructions=prompting.build_insights_instructions(),
            input=prompting.build_insights_user_content(payload),
            text={"format": prompting.build_insights_response_format()},
        )
        decoded = _extract_response_json_mapping(resp)
        insights = _INSIGHTS.validate_python(decoded.get("insights"))
    except Exception as e:  # noqa: BLE001 - insights are optional; report and carry on
        _logger.error("insights:analyze_failed error=%s detail=%s", e.__class__.__name__, e)
        return None

    _logger.info(
        "insights:analyzed transactions=%d insights=%d", len(transactions), len(insights)
    )
    return insights


# ---- Receipts ----------------------------------------------------------------


def image_data_url(image_bytes: bytes, mime_type: str = "image/jpeg") -> str:
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def scan_receipt(
    image_bytes: bytes,
    mime_type: str = "image/jpeg",
    *,
    category_names: Sequence[str] = (),
) -> ReceiptScanResult | None:
    """Read merchant, amount, date and a suggested category off a receipt image."""

    content = [
        {"type": "input_image", "image_url": image_data_url(image_bytes, mime_type)},
        {"type": "input_text", "text": prompting.build_receipt_user_text(category_names)},
    ]
    try:
        client = _create_client()
        resp = client.responses.create(
            model=_model(),
            instructions=prompting.build_receipt_instructions(),
            input=[{"role": "user", "content": content}],
            text={"format": prompting.build_receipt_response_format()},
        )
        result = ReceiptScanResult.model_validate(_extract_response_json_mapping(resp))
    except Exception as e:  # noqa: BLE001 - scanning is best effort; report and carry on
        _logger.error("insights:scan_failed error=%s detail=%s", e.__class__.__name__, e)
        return None

    _logger.info(
        "insights:scanned amount=%.2f category=%s confidence=%s",
        result.amount,
        result.category,
        result.confidence,
    )
    return result


def _receipt_date(raw: str, *, now: datetime) -> datetime:
    if not raw.strip():
        return now
    try:
        parsed = date_parser.parse(raw)
    except (ValueError, OverflowError):
        return now
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def transaction_from_receipt(
    result: ReceiptScanResult,
    categories: Sequence[Category],
    payment_methods: Sequence[PaymentMethod],
    *,
    tx_id: str,
    image_url: str | None = None,
    now: datetime | None = None,
) -> Transaction:
    """Turn a scan into an expense transaction (not yet stored).

    The category is the first whose name contains the suggested category
    (case-insensitive), else the last category. The payment method is the
    first one configured.
    """

    suggested = result.category.lower()
    category = next((c for c in categories if suggested in c.name.lower()), None)
    if category is None and categories:
        category = categories[-1]

    return Transaction(
        id=tx_id,
        amount=abs(result.amount),
        type=TransactionType.EXPENSE,
        category_id=category.id if category else FALLBACK_CATEGORY_ID,
        payment_method_id=(
            payment_methods[0].id if payment_methods else FALLBACK_PAYMENT_METHOD_ID
        ),
        date=_receipt_date(result.date, now=now or datetime.now()),
        note=f"Scanned: {result.merchant}" if result.merchant else "Scanned Receipt",
        images=[image_url] if image_url else [],
    )


__all__ = [
    "analyze_finances",
    "image_data_url",
    "scan_receipt",
    "transaction_from_receipt",
]
