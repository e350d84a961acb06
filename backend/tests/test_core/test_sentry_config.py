"""Tests for Sentry SDK configuration: chat content scrubbing and sampling."""

import os
from typing import Any
from unittest.mock import patch

from core.sentry_config import _before_send, _traces_sampler, init_sentry


class TestBeforeSendScrubbing:
    """Tests for _before_send."""

    def test_scrubs_message_content_from_request_body(self) -> None:
        """Chat messages posted to the test endpoint must not reach Sentry."""
        event: dict[str, Any] = {
            "request": {
                "data": {
                    "user_id": "42",
                    "content": "something rude",
                    "context": [{"author": "bob", "content": "hi"}],
                }
            }
        }

        result = _before_send(event, {})  # type: ignore[arg-type]

        data = result["request"]["data"]  # type: ignore[index]
        assert data["user_id"] == "42"
        assert data["content"] == "[Filtered]"
        assert data["context"][0]["content"] == "[Filtered]"
        assert data["context"][0]["author"] == "bob"

    def test_scrubs_extra(self) -> None:
        event: dict[str, Any] = {
            "extra": {"message_content": "rude", "message_context": [], "warning_id": 3}
        }

        result = _before_send(event, {})  # type: ignore[arg-type]

        assert result["extra"] == {  # type: ignore[index]
            "message_content": "[Filtered]",
            "message_context": "[Filtered]",
            "warning_id": 3,
        }

    def test_scrubs_username_keeps_id(self) -> None:
        event: dict[str, Any] = {"user": {"id": "42", "username": "offender"}}

        result = _before_send(event, {})  # type: ignore[arg-type]

        assert result["user"] == {"id": "42"}  # type: ignore[index]

    def test_filters_authorization_header(self) -> None:
        """Bot tokens in headers should be filtered."""
        event: dict[str, Any] = {
            "request": {
                "headers": {"Authorization": "Bot secret", "X-Correlation-ID": "abc"},
                "cookies": {"session": "x"},
            }
        }

        result = _before_send(event, {})  # type: ignore[arg-type]

        request = result["request"]  # type: ignore[index]
        assert request["headers"]["Authorization"] == "[Filtered]"
        assert request["headers"]["X-Correlation-ID"] == "abc"
        assert "cookies" not in request

    def test_handles_bare_event(self) -> None:
        event: dict[str, Any] = {"message": "Test"}
        assert _before_send(event, {}) == {"message": "Test"}  # type: ignore[arg-type]


class TestTracesSampler:
    """Tests for _traces_sampler."""

    def test_never_samples_health_checks(self) -> None:
        assert _traces_sampler({"asgi_scope": {"path": "/api/health"}}) == 0.0

    def test_higher_sampling_for_ledger_mutations(self) -> None:
        assert _traces_sampler({"asgi_scope": {"path": "/api/warnings/3/ignore"}}) == 0.5
        assert _traces_sampler({"asgi_scope": {"path": "/api/users/1/reset-warnings"}}) == 0.5

    def test_default_sampling_rate(self) -> None:
        assert _traces_sampler({"asgi_scope": {"path": "/api/warning-levels"}}) == 0.2
        assert _traces_sampler({}) == 0.2

    def test_respects_parent_sampling(self) -> None:
        context = {"parent_sampled": True, "asgi_scope": {"path": "/api/health"}}
        assert _traces_sampler(context) == 1.0


class TestInitSentry:
    """Tests for Sentry initialization."""

    def test_init_sentry_without_dsn_does_nothing(self) -> None:
        with patch("sentry_sdk.init") as mock_init:
            with patch.dict(os.environ, {}, clear=True):
                init_sentry()
        mock_init.assert_not_called()

    def test_init_sentry_uses_environment_variables(self) -> None:
        env_vars = {
            "SENTRY_DSN": "https://test@o0.ingest.sentry.io/0",
            "ENVIRONMENT": "production",
            "SENTRY_RELEASE": "1.2.3",
        }
        with patch("sentry_sdk.init") as mock_init:
            with patch.dict(os.environ, env_vars):
                init_sentry()

        call_kwargs = mock_init.call_args.kwargs
        assert call_kwargs["dsn"] == env_vars["SENTRY_DSN"]
        assert call_kwargs["environment"] == "production"
        assert call_kwargs["release"] == "1.2.3"
        assert call_kwargs["send_default_pii"] is False
