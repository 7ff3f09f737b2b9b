"""Unit tests for cm64_mcp.shared.auth and cm64_mcp.shared.paths."""

from pathlib import Path
from unittest.mock import patch

import pytest

from cm64_mcp.shared.auth import auth_headers, get_token
from cm64_mcp.shared.paths import CM64_DIR, CONFIG_FILE, TOKENS_DIR, get_token_file


@pytest.mark.cli_unit
class TestPaths:
    """Tests for path constants and functions."""

    def test_cm64_dir_is_in_home(self):
        """Test CM64_DIR is in user's home directory."""
        assert CM64_DIR == Path.home() / ".cm64"

    def test_config_and_tokens_in_cm64_dir(self):
        """Test CONFIG_FILE and TOKENS_DIR live under CM64_DIR."""
        assert CONFIG_FILE == CM64_DIR / "config.yaml"
        assert TOKENS_DIR == CM64_DIR / "tokens"

    def test_get_token_file(self, tmp_path):
        """Test token file path is <source>.token in TOKENS_DIR."""
        with patch("cm64_mcp.shared.paths.TOKENS_DIR", tmp_path):
            assert get_token_file("bridge") == tmp_path / "bridge.token"


@pytest.mark.cli_unit
class TestGetToken:
    """Tests for get_token function."""

    def test_token_from_cli_arg(self, tmp_path, monkeypatch):
        """Test token from CLI argument takes priority."""
        monkeypatch.setenv("TEST_TOKEN", "env-token")
        (tmp_path / "test.token").write_text("file-token")

        with patch("cm64_mcp.shared.paths.TOKENS_DIR", tmp_path):
            result = get_token("test", token_arg="cli-token", env_var="TEST_TOKEN")

        assert result == "cli-token"

    def test_token_from_env_var(self, tmp_path, monkeypatch):
        """Test token from environment variable beats the stored file."""
        monkeypatch.setenv("TEST_TOKEN", "env-token")
        (tmp_path / "test.token").write_text("file-token")

        with patch("cm64_mcp.shared.paths.TOKENS_DIR", tmp_path):
            result = get_token("test", env_var="TEST_TOKEN")

        assert result == "env-token"

    def test_token_from_file(self, tmp_path):
        """Test token from stored file, whitespace stripped."""
        (tmp_path / "test.token").write_text("file-token\n")

        with patch("cm64_mcp.shared.paths.TOKENS_DIR", tmp_path):
            result = get_token("test")

        assert result == "file-token"

    def test_empty_token_file(self, tmp_path):
        """Test an empty token file counts as no token."""
        (tmp_path / "test.token").write_text("  \n")

        with patch("cm64_mcp.shared.paths.TOKENS_DIR", tmp_path):
            assert get_token("test") is None

    def test_token_not_found(self, tmp_path):
        """Test returns None when no token available."""
        with patch("cm64_mcp.shared.paths.TOKENS_DIR", tmp_path):
            assert get_token("nonexistent") is None


@pytest.mark.cli_unit
class TestAuthHeaders:
    """Tests for auth_headers function."""

    def test_auth_headers_with_token(self):
        """Test auth headers with token."""
        assert auth_headers("my-token") == {"Authorization": "Bearer my-token"}

    def test_auth_headers_without_token(self):
        """Test auth headers without token."""
        assert auth_headers(None) == {}
