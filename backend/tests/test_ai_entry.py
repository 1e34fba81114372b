"""AI entry client against a mocked completion endpoint (httpx.MockTransport); no network."""
import json
from decimal import Decimal
from types import SimpleNamespace

import httpx
import pytest

from sitebook.config import settings
from sitebook.services import ai_entry


@pytest.fixture(autouse=True)
def api_key(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", "sk-test")
    monkeypatch.setattr(settings, "openai_base_url", "https://llm.test/v1")


def completion_transport(content, status=200, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if status != 200:
            return httpx.Response(status, json={"error": {"message": "upstream says no"}})
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})
    return httpx.MockTransport(handler)


def test_strip_code_fences_and_parse():
    rows = ai_entry.parse_json_array('```json\n[{"a": 1}, 2]\n```')
    assert rows == [{"a": 1}]
    assert ai_entry.parse_json_array("") == []


def test_parse_json_array_rejects_objects_and_garbage():
    with pytest.raises(ai_entry.AIEntryError, match="invalid JSON"):
        ai_entry.parse_json_array('{"a": 1}')
    with pytest.raises(ai_entry.AIEntryError, match="invalid JSON"):
        ai_entry.parse_json_array("sure! here you go")


@pytest.mark.asyncio
async def test_parse_attendance_sends_prompt_and_bearer():
    seen = []
    content = '[{"worker_name": "Ramesh", "status": "present", "shift": "Day"}, {"worker_name": "Suresh", "status": "Absent"}]'
    rows = await ai_entry.parse_attendance("Ramesh present, Suresh absent", transport=completion_transport(content, seen=seen))
    assert rows[0] == {"worker_name": "Ramesh", "status": "Present", "shift": "Day", "notes": None}
    assert rows[1]["status"] == "Absent"

    req = seen[0]
    assert str(req.url) == "https://llm.test/v1/chat/completions"
    assert req.headers["Authorization"] == "Bearer sk-test"
    body = json.loads(req.content)
    assert body["messages"][0]["content"] == ai_entry.ATTENDANCE_PROMPT


@pytest.mark.asyncio
async def test_parse_expenses_cleans_numbers_and_category():
    content = '[{"item_name": "Cement", "quantity": "50", "unit": "bags", "amount": "380", "category": "material"},' \
              ' {"item_name": "Tea", "amount": 120, "category": "snacks"}]'
    rows = await ai_entry.parse_expenses("50 bags cement at 380, tea 120", transport=completion_transport(content))
    assert rows[0]["quantity"] == Decimal("50")
    assert rows[0]["amount"] == Decimal("380")
    assert rows[0]["category"] == "Material"
    assert rows[1]["category"] == "Other"
    assert rows[1]["quantity"] == Decimal("0")


@pytest.mark.asyncio
async def test_parse_estimate_zeroes_numbers_too_large_to_store():
    content = '[{"description": "Steel", "unit": "kg", "quantity": 1e30, "rate": 1e13}, {"description": "Sand", "quantity": 4, "rate": 900}]'
    rows = await ai_entry.parse_estimate("steel and sand", transport=completion_transport(content))
    assert rows[0]["quantity"] == 0
    assert rows[0]["rate"] == 0
    assert rows[1]["quantity"] == Decimal("4")
    assert rows[1]["rate"] == Decimal("900")


@pytest.mark.asyncio
async def test_parse_estimate_with_image_uses_vision_model():
    seen = []
    content = '[{"description": "Brick work", "quantity": 120}]'
    rows = await ai_entry.parse_estimate(
        "", image_data_url="data:image/png;base64,AAAA", transport=completion_transport(content, seen=seen),
    )
    assert rows == [{"description": "Brick work", "unit": "Nos", "quantity": Decimal("120"), "rate": Decimal("0")}]
    body = json.loads(seen[0].content)
    assert body["model"] == settings.openai_vision_model
    assert body["messages"][1]["content"][1]["image_url"]["url"].startswith("data:image/png")


@pytest.mark.asyncio
@pytest.mark.parametrize("status,message", [
    (401, ai_entry.MSG_BAD_KEY),
    (429, ai_entry.MSG_RATE_LIMIT),
    (500, "upstream says no"),
])
async def test_http_errors_map_to_messages(status, message):
    with pytest.raises(ai_entry.AIEntryError) as exc:
        await ai_entry.parse_expenses("x", transport=completion_transport("", status=status))
    assert str(exc.value) == message


@pytest.mark.asyncio
async def test_connection_error():
    def boom(request):
        raise httpx.ConnectError("refused", request=request)
    with pytest.raises(ai_entry.AIEntryError) as exc:
        await ai_entry.parse_expenses("x", transport=httpx.MockTransport(boom))
    assert str(exc.value) == ai_entry.MSG_CONNECTION


@pytest.mark.asyncio
async def test_missing_key(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", None)
    with pytest.raises(ai_entry.AIEntryError, match="OPENAI_API_KEY"):
        await ai_entry.parse_expenses("x")


def test_match_worker_either_direction():
    workers = [SimpleNamespace(id=1, full_name="Ramesh Kumar"), SimpleNamespace(id=2, full_name="Anil")]
    assert ai_entry.match_worker("ramesh", workers).id == 1
    assert ai_entry.match_worker("Anil Sharma", workers).id == 2
    assert ai_entry.match_worker("Zubin", workers) is None
    assert ai_entry.match_worker("", workers) is None


def test_expense_description():
    assert ai_entry.expense_description("Cement", "bags") == "Cement (bags)"
    assert ai_entry.expense_description("Tea", None) == "Tea"
