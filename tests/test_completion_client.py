import json as jsonlib

import pytest
import requests

from frameforge import completion, config
from frameforge.completion import (
    Completed,
    CompletionRequest,
    Incomplete,
    Refused,
    TransportFailure,
)


class FakeResp:
    def __init__(self, status, payload):
        self.status_code = status
        self._payload = payload
        self.text = jsonlib.dumps(payload)

    def json(self):
        return self._payload


def _req(**overrides):
    base = dict(
        system_prompt="sys",
        user_prompt="user",
        max_output_tokens=2048,
        temperature=0.2,
    )
    base.update(overrides)
    return CompletionRequest(**base)


@pytest.fixture(autouse=True)
def _configured(monkeypatch):
    monkeypatch.setattr(config, "OPENAI_API_KEY", "test-key")
    monkeypatch.setattr(config, "OPENAI_MODEL", "test-model")


def _capture(monkeypatch, payload, status=200):
    captured = {}

    def fake_post(url, headers=None, json=None, timeout=None):
        captured["url"] = url
        captured["headers"] = headers
        captured["body"] = json
        return FakeResp(status, payload)

    monkeypatch.setattr(completion.requests, "post", fake_post)
    return captured


def test_completed_text_and_request_shape(monkeypatch):
    captured = _capture(monkeypatch, {"choices": [{"message": {"content": "hello"}, "finish_reason": "stop"}]})
    out = completion.request_completion(_req(attached_image="data:image/png;base64,AAAA"))
    assert out == Completed("hello")
    assert captured["url"] == config.OPENAI_ENDPOINT
    assert captured["headers"]["Authorization"] == "Bearer test-key"
    body = captured["body"]
    assert body["model"] == "test-model"
    assert body["max_tokens"] == 2048
    assert body["messages"][0] == {"role": "system", "content": "sys"}
    parts = body["messages"][1]["content"]
    assert parts[0] == {"type": "text", "text": "user"}
    assert parts[1]["image_url"]["url"] == "data:image/png;base64,AAAA"


def test_no_image_part_without_attachment(monkeypatch):
    captured = _capture(monkeypatch, {"choices": [{"message": {"content": "x"}, "finish_reason": "stop"}]})
    completion.request_completion(_req())
    assert len(captured["body"]["messages"][1]["content"]) == 1


def test_length_finish_is_incomplete(monkeypatch):
    _capture(monkeypatch, {"choices": [{"message": {"content": '{"html": "<p'}, "finish_reason": "length"}]})
    assert completion.request_completion(_req()) == Incomplete("length")


def test_refusal_field_is_refused(monkeypatch):
    _capture(monkeypatch, {"choices": [{"message": {"content": None, "refusal": "No."}, "finish_reason": "stop"}]})
    assert completion.request_completion(_req()) == Refused("No.")


def test_content_filter_is_refused(monkeypatch):
    _capture(monkeypatch, {"choices": [{"message": {"content": ""}, "finish_reason": "content_filter"}]})
    assert isinstance(completion.request_completion(_req()), Refused)


def test_content_parts_are_flattened(monkeypatch):
    content = [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]
    _capture(monkeypatch, {"choices": [{"message": {"content": content}, "finish_reason": "stop"}]})
    assert completion.request_completion(_req()) == Completed("ab")


def test_http_error_is_transport_failure(monkeypatch):
    _capture(monkeypatch, {"error": {"message": "bad key"}}, status=401)
    out = completion.request_completion(_req())
    assert isinstance(out, TransportFailure)
    assert "credentials" in out.message


def test_network_error_is_transport_failure(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(completion.requests, "post", boom)
    assert isinstance(completion.request_completion(_req()), TransportFailure)


def test_missing_key_skips_http(monkeypatch):
    monkeypatch.setattr(config, "OPENAI_API_KEY", "")

    def never(*args, **kwargs):
        raise AssertionError("no HTTP call expected")

    monkeypatch.setattr(completion.requests, "post", never)
    assert isinstance(completion.request_completion(_req()), TransportFailure)


def test_request_rejects_bad_budget_and_temperature():
    with pytest.raises(ValueError):
        _req(max_output_tokens=0)
    with pytest.raises(ValueError):
        _req(temperature=1.5)
