import httpx
import pytest
import respx

from resident_resolve.classifier import PROMPT_TEMPLATE, parse_priority

CLASSIFIER_URL = "https://classifier.test/v1/generate"


def _answer(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.mark.parametrize(
    "text,expected",
    [("High", "High"), (" Low\n", "Low"), ("medium", None), ("High priority", None), ("", None), (None, None)],
)
def test_parse_priority_accepts_exact_labels_only(text, expected):
    assert parse_priority(text) == expected


@pytest.mark.asyncio
async def test_classify_returns_model_label(make_classifier):
    oracle = make_classifier()
    with respx.mock(assert_all_called=True) as mock:
        route = mock.post(CLASSIFIER_URL).mock(return_value=httpx.Response(200, json=_answer("High")))
        label = await oracle.classify("Water is flooding the corridor", fallback="Low")
    await oracle.aclose()

    assert label == "High"
    request = route.calls.last.request
    assert request.headers["x-goog-api-key"] == "test-key"
    assert b"flooding the corridor" in request.content


@pytest.mark.asyncio
async def test_unparseable_answer_falls_back(make_classifier):
    oracle = make_classifier()
    with respx.mock() as mock:
        mock.post(CLASSIFIER_URL).mock(return_value=httpx.Response(200, json=_answer("Probably urgent")))
        label = await oracle.classify("Fan makes noise", fallback="Medium")
    await oracle.aclose()
    assert label == "Medium"


@pytest.mark.asyncio
async def test_malformed_payload_falls_back(make_classifier):
    oracle = make_classifier()
    with respx.mock() as mock:
        mock.post(CLASSIFIER_URL).mock(return_value=httpx.Response(200, json={"candidates": []}))
        label = await oracle.classify("Fan makes noise", fallback="Low")
    await oracle.aclose()
    assert label == "Low"


@pytest.mark.asyncio
async def test_server_error_falls_back(make_classifier):
    oracle = make_classifier()
    with respx.mock() as mock:
        mock.post(CLASSIFIER_URL).mock(return_value=httpx.Response(500, json={"error": "boom"}))
        label = await oracle.classify("Sparks from the socket", fallback="High")
    await oracle.aclose()
    assert label == "High"


@pytest.mark.asyncio
async def test_timeout_falls_back(make_classifier):
    oracle = make_classifier()
    with respx.mock() as mock:
        mock.post(CLASSIFIER_URL).mock(side_effect=httpx.ReadTimeout)
        label = await oracle.classify("Wifi is slow", fallback="Low")
    await oracle.aclose()
    assert label == "Low"


@pytest.mark.asyncio
async def test_disabled_without_api_key_makes_no_request(make_classifier):
    oracle = make_classifier(api_key=None)
    assert oracle.enabled is False
    with respx.mock(assert_all_called=False) as mock:
        route = mock.post(CLASSIFIER_URL)
        label = await oracle.classify("Anything", fallback="Medium")
    assert label == "Medium"
    assert route.called is False


def test_prompt_embeds_description():
    prompt = PROMPT_TEMPLATE.format(description="Broken window latch")
    assert '"Broken window latch"' in prompt
    assert "Low, Medium, or High" in prompt
