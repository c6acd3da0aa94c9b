"""Unit tests for admin API key authentication."""

from unittest.mock import patch

import pytest
from fastapi import HTTPException

from courier.core.auth import parse_api_keys, validate_admin_key, verify_admin_key
from courier.core.errors import AuthenticationAppError


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("ops-key", {"ops-key"}),
        ("a,b,c", {"a", "b", "c"}),
        (" a , b  ,  c ", {"a", "b", "c"}),
        ("a,b,a", {"a", "b"}),
        ("   ,  ,  ", set()),
        ("", set()),
        (None, set()),
    ],
)
def test_parse_api_keys(raw, expected) -> None:
    assert parse_api_keys(raw) == expected


class TestValidateAdminKey:
    """Core key validation, independent of HTTP."""

    @patch("courier.core.auth.settings")
    def test_bypassed_when_not_required(self, mock_settings) -> None:
        mock_settings.app.admin_key_required = False

        validate_admin_key("anything")
        validate_admin_key("")

    @pytest.mark.parametrize("configured", [None, "", " , "])
    @patch("courier.core.auth.settings")
    def test_no_configured_keys(self, mock_settings, configured) -> None:
        mock_settings.app.admin_key_required = True
        mock_settings.app.admin_api_keys = configured

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_admin_key("ops-key")

        assert exc_info.value.code == "admin_keys_not_configured"
        assert "APP_ADMIN_API_KEYS" in exc_info.value.details["hint"]

    @patch("courier.core.auth.settings")
    def test_accepts_any_configured_key(self, mock_settings) -> None:
        mock_settings.app.admin_key_required = True
        mock_settings.app.admin_api_keys = " ops-key , oncall-key "

        validate_admin_key("ops-key")
        validate_admin_key("oncall-key")

    @pytest.mark.parametrize("provided", ["wrong", "", " ops-key ", "OPS-KEY"])
    @patch("courier.core.auth.settings")
    def test_rejects_other_keys(self, mock_settings, provided) -> None:
        mock_settings.app.admin_key_required = True
        mock_settings.app.admin_api_keys = "ops-key"

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_admin_key(provided)

        assert exc_info.value.code == "invalid_api_key"


class TestVerifyAdminKeyDependency:
    @pytest.mark.asyncio
    @patch("courier.core.auth.settings")
    async def test_bypassed_when_not_required(self, mock_settings) -> None:
        mock_settings.app.admin_key_required = False

        await verify_admin_key(x_api_key=None)

    @pytest.mark.asyncio
    @patch("courier.core.auth.settings")
    async def test_missing_header_is_403(self, mock_settings) -> None:
        mock_settings.app.admin_key_required = True
        mock_settings.app.admin_api_keys = "ops-key"

        with pytest.raises(HTTPException) as exc_info:
            await verify_admin_key(x_api_key=None)

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Missing API key. Provide X-API-Key header."

    @pytest.mark.asyncio
    @patch("courier.core.auth.settings")
    async def test_invalid_key_is_403(self, mock_settings) -> None:
        mock_settings.app.admin_key_required = True
        mock_settings.app.admin_api_keys = "ops-key"

        with pytest.raises(HTTPException) as exc_info:
            await verify_admin_key(x_api_key="guess")

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Invalid or missing API key"

    @pytest.mark.asyncio
    @patch("courier.core.auth.settings")
    async def test_unconfigured_keys_is_403(self, mock_settings) -> None:
        mock_settings.app.admin_key_required = True
        mock_settings.app.admin_api_keys = None

        with pytest.raises(HTTPException) as exc_info:
            await verify_admin_key(x_api_key="ops-key")

        assert exc_info.value.status_code == 403
        assert "no valid keys are configured" in exc_info.value.detail

    @pytest.mark.asyncio
    @patch("courier.core.auth.settings")
    async def test_valid_key_passes(self, mock_settings) -> None:
        mock_settings.app.admin_key_required = True
        mock_settings.app.admin_api_keys = "ops-key,oncall-key"

        assert await verify_admin_key(x_api_key="oncall-key") is None
