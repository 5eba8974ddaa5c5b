"""Prompt construction and response formats for the LLM collaborator.

This module builds:
- A compact JSON view of transactions for the insights prompt, with a fixed
  field order and category ids resolved to names.
- The instructions/user content for spending insights and receipt scanning.
- The strict ``text.format`` (JSON Schema) objects for the OpenAI Responses
  API. Strict mode requires every property to be listed as required, so
  optional values are expressed as nullable types.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from openai.types.responses.response_format_text_json_schema_config_param import (
    ResponseFormatTextJSONSchemaConfigParam,
)

from .categories import resolve_category
from .models import Category, Transaction

INSIGHT_COUNT = 3
SEVERITIES: tuple[str, ...] = ("info", "warning", "success")

TRANSACTION_FIELD_ORDER: tuple[str, ...] = ("amount", "type", "category", "date")


def serialize_transactions(
    transactions: Sequence[Transaction], categories: Sequence[Category]
) -> str:
    """Serialize ``{amount, type, category, date}`` per transaction, in that order.

    ``category`` is the category name, or ``null`` for lent or stale ids.
    """

    arr: list[dict[str, Any]] = []
    for t in transactions:
        cat = resolve_category(categories, t.category_id)
        arr.append(
            {
                "amount": t.amount,
                "type": t.type.value,
                "category": cat.name if cat else None,
                "date": t.date.isoformat(),
            }
        )
    return json.dumps(arr, ensure_ascii=False)


# ---- Insights ----------------------------------------------------------------


def build_insights_instructions() -> str:
    return (
        "You are a personal finance assistant. Analyze the user's transactions and give "
        f"exactly {INSIGHT_COUNT} actionable insights or tips to save money. Amounts are in "
        "Indian rupees. Output JSON only that conforms to the specified schema."
    )


def build_insights_user_content(transactions_json: str) -> str:
    return (
        f"Provide {INSIGHT_COUNT} insights. Each has a short 'title', a one or two sentence "
        f"'description', and a 'severity' (one of: {', '.join(SEVERITIES)}).\n\n"
        "BEGIN_TRANSACTIONS_JSON\n"
        f"{transactions_json}\n"
        "END_TRANSACTIONS_JSON"
    )


def build_insights_response_format() -> ResponseFormatTextJSONSchemaConfigParam:
    """Return the strict schema ``{"insights": [{title, description, severity}]}``.

    The top level must be an object, so the array is wrapped.
    """

    return {
        "type": "json_schema",
        "name": "financial_insights",
        "schema": {
            "type": "object",
            "properties": {
                "insights": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "title": {"type": "string"},
                            "description": {"type": "string"},
                            "severity": {"type": "string", "enum": list(SEVERITIES)},
                        },
                        "required": ["title", "description", "severity"],
                        "additionalProperties": False,
                    },
                }
            },
            "required": ["insights"],
            "additionalProperties": False,
        },
        "strict": True,
    }


# ---- Receipts ----------------------------------------------------------------


def build_receipt_instructions() -> str:
    return (
        "You read photographed shop receipts. Extract the merchant name, the total amount "
        "paid, the purchase date, and suggest a spending category. Output JSON only that "
        "conforms to the specified schema."
    )


def build_receipt_user_text(category_names: Sequence[str] = ()) -> str:
    text = (
        "Extract the merchant name, total amount, date (YYYY-MM-DD when legible), and suggest "
        "a category for this receipt. Use null for a merchant you cannot read. Give a "
        "confidence between 0 and 1."
    )
    if category_names:
        text += " Prefer one of these categories: " + ", ".join(category_names) + "."
    return text


def build_receipt_response_format() -> ResponseFormatTextJSONSchemaConfigParam:
    return {
        "type": "json_schema",
        "name": "receipt_scan",
        "schema": {
            "type": "object",
            "properties": {
                "merchant": {"type": ["string", "null"]},
                "amount": {"type": "number"},
                "date": {"type": "string"},
                "category": {"type": "string"},
                "confidence": {"type": ["number", "null"]},
            },
            "required": ["merchant", "amount", "date", "category", "confidence"],
            "additionalProperties": False,
        },
        "strict": True,
    }


__all__ = [
    "INSIGHT_COUNT",
    "SEVERITIES",
    "build_insights_instructions",
    "build_insights_response_format",
    "build_insights_user_content",
    "build_receipt_instructions",
    "build_receipt_response_format",
    "build_receipt_user_text",
    "serialize_transactions",
]
