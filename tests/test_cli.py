"""Unit tests for wpsyncctl.py - Command line client."""

from unittest.mock import MagicMock, patch

import pytest
import requests
from click.testing import CliRunner

from wpsyncctl import WPSyncCLI, cli


def api_response(status_code=200, payload=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.content = b"{}" if payload is not None else b""
    resp.json.return_value = payload
    if status_code >= 400:
        error = requests.exceptions.HTTPError(f"{status_code} Error")
        error.response = resp
        resp.raise_for_status.side_effect = error
    return resp


@pytest.fixture
def runner():
    return CliRunner()


class TestMakeRequest:
    def test_json_body(self):
        with patch(
            "wpsyncctl.requests.request", return_value=api_response(200, {"a": 1})
        ) as mock_request:
            result = WPSyncCLI("http://api/v1/")._make_request("GET", "/sites")

        assert result == {"a": 1}
        mock_request.assert_called_once_with(
            "GET", "http://api/v1/sites", timeout=300
        )

    def test_no_content(self):
        with patch("wpsyncctl.requests.request", return_value=api_response(204)):
            assert WPSyncCLI()._make_request("DELETE", "/sites/1") == {}

    def test_error_returns_none(self):
        with patch(
            "wpsyncctl.requests.request",
            return_value=api_response(404, {"detail": "WordPress site not found"}),
        ):
            assert WPSyncCLI()._make_request("GET", "/sites/9") is None


class TestCommands:
    def test_sites_table(self, runner):
        sites = [
            {
                "id": 1,
                "name": "Main blog",
                "base_url": "https://blog.example.com",
                "translation_plugin": "WPML",
                "sync_status": "success",
                "total_found": 3,
                "total_synced": 3,
                "last_sync_at": None,
            }
        ]
        with patch("wpsyncctl.requests.request", return_value=api_response(200, sites)):
            result = runner.invoke(cli, ["sites"])

        assert result.exit_code == 0
        assert "Main blog" in result.output
        assert "WPML" in result.output

    def test_sites_empty(self, runner):
        with patch("wpsyncctl.requests.request", return_value=api_response(200, [])):
            result = runner.invoke(cli, ["sites"])

        assert "No sites registered" in result.output

    def test_add(self, runner):
        created = {"id": 4, "base_url": "https://blog.example.com"}
        with patch(
            "wpsyncctl.requests.request", return_value=api_response(201, created)
        ) as mock_request:
            result = runner.invoke(
                cli, ["add", "Main blog", "https://blog.example.com", "-u", "admin"]
            )

        assert result.exit_code == 0
        assert "ID: 4" in result.output
        assert mock_request.call_args[1]["json"] == {
            "name": "Main blog",
            "url": "https://blog.example.com",
            "username": "admin",
        }

    def test_describe_json(self, runner):
        site = {"id": 1, "name": "Main blog"}
        with patch("wpsyncctl.requests.request", return_value=api_response(200, site)):
            result = runner.invoke(cli, ["describe", "1", "-o", "json"])

        assert '"name": "Main blog"' in result.output

    def test_remove_requires_confirmation(self, runner):
        with patch("wpsyncctl.requests.request") as mock_request:
            result = runner.invoke(cli, ["remove", "1"], input="n\n")

        assert result.exit_code != 0
        mock_request.assert_not_called()

    def test_remove(self, runner):
        with patch("wpsyncctl.requests.request", return_value=api_response(204)):
            result = runner.invoke(cli, ["remove", "1", "--yes"])

        assert "Site removed" in result.output

    def test_detect_uses_env_password(self, runner):
        info = {
            "plugin": "POLYLANG",
            "version": "3.5",
            "supported_languages": ["en", "fr"],
            "settings": {},
        }
        with patch(
            "wpsyncctl.requests.request",
            return_value=api_response(200, {"success": True, "data": info}),
        ) as mock_request:
            result = runner.invoke(
                cli, ["detect", "1"], env={"WP_APP_PASSWORD": "secret"}
            )

        assert result.exit_code == 0
        assert "Plugin: POLYLANG" in result.output
        assert "Languages: en, fr" in result.output
        assert mock_request.call_args[1]["json"] == {"app_password": "secret"}

    def test_sync(self, runner):
        data = {
            "found": 3,
            "synced": 2,
            "skipped": 0,
            "created": 2,
            "updated": 0,
            "errors": ["Post 3: Unknown language code: de"],
            "status": "partial",
            "message": "Sync completed: 2 articles synced, 0 skipped",
        }
        with patch(
            "wpsyncctl.requests.request",
            return_value=api_response(200, {"success": True, "data": data}),
        ) as mock_request:
            result = runner.invoke(
                cli,
                ["sync", "1", "--mode", "full", "-l", "en", "-l", "fr"],
                env={"WP_APP_PASSWORD": "secret"},
            )

        assert result.exit_code == 0
        assert "Sync completed: 2 articles synced, 0 skipped" in result.output
        assert mock_request.call_args[1]["json"] == {
            "app_password": "secret",
            "mode": "full",
            "languages": ["en", "fr"],
        }
