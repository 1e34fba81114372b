"""
AI-assisted entry: free text (or a photo of a BOQ) -> JSON array of attendance, expense or estimate rows.
One chat-completion call per request through httpx with the server-held key; no retry.
Results are only a preview; nothing is written until the user confirms.
"""
import json
import logging
from typing import Any, Dict, Iterable, List, Optional

import httpx

from sitebook.config import settings
from sitebook.accounting.wages import bounded, MAX_QUANTITY
from sitebook.services.boq_import import clean_number, QTY_PLACES

logger = logging.getLogger(__name__)

ATTENDANCE_PROMPT = (
    "You are a data entry assistant. Convert user text into a JSON array of attendance objects. "
    "Fields allowed: worker_name, status (Present/Absent), shift (Day/Night), notes. "
    "Constraint: Return only JSON. No markdown formatting."
)
EXPENSE_PROMPT = (
    "You are a construction accountant. Extract expense details from the text into a JSON array. "
    "Fields: item_name (string), quantity (number), unit (bags/kg/liters), "
    "amount (unit price if available, else total cost given by user), category (Material/Transport/Food/Other). "
    "Constraint: Return only JSON. No markdown formatting. "
    "IMPORTANT: Do NOT calculate totals. Only extract the numbers explicitly stated by the user."
)
ESTIMATE_PROMPT = (
    "You are a Quantity Surveyor. Extract BOQ items from the input into a JSON array. "
    "Fields: description (string), unit (bags/sqft/nos), quantity (number), rate (number, optional). "
    "Logic: If rate is missing, set it to 0. If unit is missing, infer it (e.g., Cement -> bags). "
    "Constraint: Return only JSON. No markdown formatting. "
    "IMPORTANT: Do NOT calculate amounts or totals. Only extract quantity and rate."
)

MSG_INVALID_JSON = "AI returned invalid JSON format."
MSG_BAD_KEY = "Invalid API key"
MSG_RATE_LIMIT = "Rate limit exceeded or insufficient quota."
MSG_CONNECTION = "Connection to OpenAI failed."

EXPENSE_CATEGORIES = ("Material", "Transport", "Food", "Other")


class AIEntryError(ValueError):
    """Upstream AI call failed or returned something unusable."""


def _error_message(response: httpx.Response) -> str:
    if response.status_code == 401:
        return MSG_BAD_KEY
    if response.status_code == 429:
        return MSG_RATE_LIMIT
    try:
        body = response.json()
    except ValueError:
        body = {}
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict) and err.get("message"):
        return str(err["message"])
    return f"API Request failed with status {response.status_code}"


async def chat_completion(
    messages: List[Dict[str, Any]],
    model: Optional[str] = None,
    max_tokens: Optional[int] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Returns the first choice's message content ('' when the model answered nothing)."""
    if not settings.openai_api_key:
        raise AIEntryError("AI entry is not configured: set OPENAI_API_KEY")
    payload: Dict[str, Any] = {
        "model": model or settings.openai_model,
        "messages": messages,
        "temperature": 0,
    }
    if max_tokens:
        payload["max_tokens"] = max_tokens
    url = settings.openai_base_url.rstrip("/") + "/chat/completions"
    headers = {"Authorization": f"Bearer {settings.openai_api_key}", "Content-Type": "application/json"}
    try:
        async with httpx.AsyncClient(timeout=httpx.Timeout(settings.openai_timeout_seconds), transport=transport) as client:
            response = await client.post(url, headers=headers, json=payload)
    except httpx.HTTPError as e:
        logger.warning("AI completion request failed: %s", e)
        raise AIEntryError(MSG_CONNECTION)
    if response.status_code >= 400:
        message = _error_message(response)
        logger.warning("AI completion returned %s: %s", response.status_code, message)
        raise AIEntryError(message)
    try:
        data = response.json()
        return data["choices"][0]["message"].get("content") or ""
    except (ValueError, KeyError, IndexError, TypeError):
        logger.warning("AI completion response had no choices: %s", response.text[:300])
        raise AIEntryError(MSG_INVALID_JSON)


def strip_code_fences(content: str) -> str:
    return content.replace("```json", "").replace("```", "").strip()


def parse_json_array(content: str) -> List[Dict[str, Any]]:
    """Empty answer -> []. Anything that is not a JSON array raises AIEntryError; non-object entries are dropped."""
    if not content or not content.strip():
        return []
    cleaned = strip_code_fences(content)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning("AI answer is not JSON: %s", content[:300])
        raise AIEntryError(MSG_INVALID_JSON)
    if not isinstance(data, list):
        raise AIEntryError(MSG_INVALID_JSON)
    return [row for row in data if isinstance(row, dict)]


def _status(value: Any) -> str:
    return "Absent" if str(value or "").strip().lower().startswith("a") else "Present"


def _category(value: Any) -> str:
    cat = str(value or "").strip().capitalize()
    return cat if cat in EXPENSE_CATEGORIES else "Other"


async def parse_attendance(text: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> List[Dict[str, Any]]:
    content = await chat_completion(
        [{"role": "system", "content": ATTENDANCE_PROMPT}, {"role": "user", "content": text}],
        transport=transport,
    )
    rows = []
    for row in parse_json_array(content):
        name = str(row.get("worker_name") or "").strip()
        if not name:
            continue
        rows.append({
            "worker_name": name,
            "status": _status(row.get("status")),
            "shift": row.get("shift") or None,
            "notes": row.get("notes") or None,
        })
    return rows


async def parse_expenses(text: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> List[Dict[str, Any]]:
    content = await chat_completion(
        [{"role": "system", "content": EXPENSE_PROMPT}, {"role": "user", "content": text}],
        transport=transport,
    )
    return [
        {
            "item_name": str(row.get("item_name") or "Item").strip(),
            "quantity": bounded(clean_number(row.get("quantity")), QTY_PLACES, MAX_QUANTITY),
            "unit": row.get("unit") or None,
            "amount": bounded(clean_number(row.get("amount"))),
            "category": _category(row.get("category")),
        }
        for row in parse_json_array(content)
    ]


async def parse_estimate(
    text: str,
    image_data_url: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[Dict[str, Any]]:
    """With an image the vision model gets a text + image_url message."""
    if image_data_url:
        user_content: Any = [
            {"type": "text", "text": text or "Extract BOQ items from this image."},
            {"type": "image_url", "image_url": {"url": image_data_url}},
        ]
        model = settings.openai_vision_model
    else:
        user_content = text
        model = settings.openai_model
    content = await chat_completion(
        [{"role": "system", "content": ESTIMATE_PROMPT}, {"role": "user", "content": user_content}],
        model=model,
        max_tokens=4000,
        transport=transport,
    )
    return [
        {
            "description": str(row.get("description") or "Unknown Item").strip(),
            "unit": row.get("unit") or "Nos",
            "quantity": bounded(clean_number(row.get("quantity")), QTY_PLACES, MAX_QUANTITY),
            "rate": bounded(clean_number(row.get("rate"))),
        }
        for row in parse_json_array(content)
    ]


def match_worker(name: str, workers: Iterable[Any]) -> Optional[Any]:
    """Case-insensitive substring match in either direction ('Ramesh' ~ 'Ramesh Kumar'); first hit wins."""
    needle = (name or "").strip().lower()
    if not needle:
        return None
    for w in workers:
        full = (w.full_name or "").strip().lower()
        if full and (needle in full or full in needle):
            return w
    return None


def expense_description(item_name: str, unit: Optional[str]) -> str:
    return f"{item_name} ({unit})" if unit else item_name
