"""
Tests for the moderation provider HTTP client.

requests is mocked; every failure mode must surface as
ProviderUnavailableError so the screener can fall back.
"""

import pytest
import requests
from unittest.mock import MagicMock

from blog_comments.services.moderation import ModerationSettings
from blog_comments.services.moderation_provider import ModerationProvider, ProviderResult
from blog_comments.utils.errors import ProviderUnavailableError


def _provider(session, api_key="sk-test"):
    return ModerationProvider(
        url="https://api.openai.com/v1/moderations",
        api_key=api_key,
        timeout=5,
        session=session,
    )


def _response(payload, status=200):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return resp


class TestModerationProvider:

    def test_parses_flagged_result(self):
        session = MagicMock()
        session.post.return_value = _response({
            "results": [{
                "flagged": True,
                "categories": {"harassment": True, "hate": False},
                "category_scores": {"harassment": 0.91, "hate": 0.02},
            }]
        })

        result = _provider(session).check("you idiot")

        assert result.flagged is True
        assert result.flagged_categories == ["harassment"]
        assert result.category_scores["harassment"] == 0.91

    def test_sends_input_model_and_timeout(self):
        session = MagicMock()
        session.post.return_value = _response({"results": [{"flagged": False, "categories": {}}]})

        _provider(session).check("hello there")

        args, kwargs = session.post.call_args
        assert args[0] == "https://api.openai.com/v1/moderations"
        assert kwargs["json"] == {"input": "hello there", "model": "omni-moderation-latest"}
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert kwargs["timeout"] == 5

    def test_missing_key_raises_without_calling(self):
        session = MagicMock()
        with pytest.raises(ProviderUnavailableError):
            _provider(session, api_key="").check("hello")
        session.post.assert_not_called()

    def test_timeout_raises_provider_unavailable(self):
        session = MagicMock()
        session.post.side_effect = requests.Timeout("read timed out")
        with pytest.raises(ProviderUnavailableError) as exc:
            _provider(session).check("hello")
        assert "timed out" in exc.value.message

    def test_connection_error_raises_provider_unavailable(self):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("refused")
        with pytest.raises(ProviderUnavailableError):
            _provider(session).check("hello")

    def test_non_2xx_raises_provider_unavailable(self):
        session = MagicMock()
        session.post.return_value = _response({"error": "bad key"}, status=401)
        with pytest.raises(ProviderUnavailableError):
            _provider(session).check("hello")

    def test_invalid_json_raises_provider_unavailable(self):
        session = MagicMock()
        resp = _response(None)
        resp.json.side_effect = ValueError("no json")
        session.post.return_value = resp
        with pytest.raises(ProviderUnavailableError):
            _provider(session).check("hello")

    def test_empty_results_raise_provider_unavailable(self):
        session = MagicMock()
        session.post.return_value = _response({"results": []})
        with pytest.raises(ProviderUnavailableError):
            _provider(session).check("hello")

    @pytest.mark.parametrize("payload", [
        {"results": ["oops"]},
        {"results": {"flagged": True}},
        {"results": [{"flagged": True, "categories": ["hate"]}]},
        {"results": [{"flagged": True, "categories": {}, "category_scores": {"hate": "high"}}]},
    ])
    def test_unexpected_body_raises_provider_unavailable(self, payload):
        session = MagicMock()
        session.post.return_value = _response(payload)
        with pytest.raises(ProviderUnavailableError):
            _provider(session).check("hello")

    def test_from_settings(self):
        settings = ModerationSettings(provider_key="sk-abc", provider_timeout=3.0)
        provider = ModerationProvider.from_settings(settings)
        assert provider.is_configured is True
        assert provider.timeout == 3.0
        assert provider.api_key == "sk-abc"


def test_provider_result_lists_only_true_categories():
    result = ProviderResult(flagged=True, categories={"violence": False, "self-harm": True})
    assert result.flagged_categories == ["self-harm"]
