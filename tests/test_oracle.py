from __future__ import annotations

from types import SimpleNamespace

import pytest
import requests

from dirac.errors import AIProcessingError
from dirac.oracle import OllamaOracle, os_kind
from dirac.tools import DirectoryState


def make_oracle(tmp_path) -> OllamaOracle:
    return OllamaOracle(
        state=DirectoryState(str(tmp_path)), model="tiny", api_url="http://ollama.test/api/generate",
        timeout=5,
    )


def reply(payload) -> SimpleNamespace:
    return SimpleNamespace(status_code=200, json=lambda: payload)


def test_request_payload(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "notes.txt").write_text("x")
    (tmp_path / "src").mkdir()
    seen = {}

    def fake_post(url, json=None, timeout=None):
        seen.update(url=url, json=json, timeout=timeout)
        return reply({"response": "  COMMAND: ls\nEXPLANATION: list  \n"})

    monkeypatch.setattr(requests, "post", fake_post)
    text = make_oracle(tmp_path).resolve("show files", "extra")

    assert text == "COMMAND: ls\nEXPLANATION: list"
    assert seen["url"] == "http://ollama.test/api/generate"
    assert seen["timeout"] == 5
    assert seen["json"]["model"] == "tiny"
    assert seen["json"]["stream"] is False
    prompt = seen["json"]["prompt"]
    assert "'show files'" in prompt
    assert "'extra'" in prompt
    assert str(tmp_path) in prompt
    assert "src/" in prompt and "notes.txt" in prompt
    assert f"OS: {os_kind()}" in prompt


def test_empty_directory_listing(tmp_path) -> None:
    assert "(empty)" in make_oracle(tmp_path).build_prompt("anything")


def test_connection_refused_explains_setup(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_post(*args, **kwargs):
        raise requests.exceptions.ConnectionError("refused")

    monkeypatch.setattr(requests, "post", fake_post)
    with pytest.raises(AIProcessingError) as info:
        make_oracle(tmp_path).resolve("x")
    assert "not running" in info.value.message
    assert "ollama pull tiny" in info.value.message


def test_timeout_is_reported_separately(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_post(*args, **kwargs):
        raise requests.exceptions.ReadTimeout("slow")

    monkeypatch.setattr(requests, "post", fake_post)
    with pytest.raises(AIProcessingError) as info:
        make_oracle(tmp_path).resolve("x")
    assert "timed out" in info.value.message
    assert "not running" not in info.value.message


def test_other_transport_failure(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_post(*args, **kwargs):
        raise requests.exceptions.InvalidURL("bad url")

    monkeypatch.setattr(requests, "post", fake_post)
    with pytest.raises(AIProcessingError, match="Failed to connect to AI service"):
        make_oracle(tmp_path).resolve("x")


def test_missing_model(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(requests, "post", lambda *a, **k: reply({"error": "model 'tiny' not found"}))
    with pytest.raises(AIProcessingError) as info:
        make_oracle(tmp_path).resolve("x")
    assert info.value.message.startswith("Model 'tiny' not found")
    assert "ollama pull tiny" in info.value.message


def test_service_error(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(requests, "post", lambda *a, **k: reply({"error": "out of memory"}))
    with pytest.raises(AIProcessingError, match="Ollama error: out of memory"):
        make_oracle(tmp_path).resolve("x")


def test_unusable_bodies_yield_empty_text(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    def not_json():
        raise ValueError("no json")

    oracle = make_oracle(tmp_path)
    for resp in (
        SimpleNamespace(status_code=502, json=not_json),
        reply(["not", "a", "dict"]),
        reply({"done": True}),
        reply({"response": 42}),
    ):
        monkeypatch.setattr(requests, "post", lambda *a, _r=resp, **k: _r)
        assert oracle.resolve("x") == ""
