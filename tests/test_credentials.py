"""Tests for GitHub token resolution"""

import os

import pytest

from github_org_analyser.core.credentials import Credential, normalize_credential_value, resolve_credential
from github_org_analyser.core.exceptions import ConfigurationError


class TestNormalize:
    """Test credential value cleanup"""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("  ghp_abc  ", "ghp_abc"),
            ('"ghp_abc"', "ghp_abc"),
            ("'ghp_abc'", "ghp_abc"),
            (None, ""),
        ],
    )
    def test_values(self, raw, expected):
        assert normalize_credential_value(raw) == expected


class TestCredential:
    """Test the credential value object"""

    def test_authorization_header(self):
        assert Credential("ghp_abc").authorization_header() == {"Authorization": "Bearer ghp_abc"}

    def test_token_not_in_repr_or_str(self):
        credential = Credential("ghp_secretvalue")
        assert "ghp_secretvalue" not in repr(credential)
        assert "ghp_secretvalue" not in str(credential)

    def test_empty_token_rejected(self):
        with pytest.raises(ConfigurationError):
            Credential("   ")


class TestResolveCredential:
    """Test token lookup priority"""

    def test_explicit_token_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_from_env")
        credential = resolve_credential("ghp_explicit", env_file=tmp_path / "none.env")
        assert credential.token == "ghp_explicit"
        assert credential.source == "explicit"

    def test_environment_token(self, monkeypatch, tmp_path):
        monkeypatch.setenv("GITHUB_TOKEN", '"ghp_from_env"')
        credential = resolve_credential(env_file=tmp_path / "none.env")
        assert credential.token == "ghp_from_env"
        assert credential.source == "env"

    def test_dotenv_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("GITHUB_TOKEN=ghp_from_dotenv\n", encoding="utf-8")
        try:
            credential = resolve_credential(env_file=env_file)
        finally:
            # load_dotenv writes straight into os.environ
            os.environ.pop("GITHUB_TOKEN", None)
        assert credential.token == "ghp_from_dotenv"

    def test_missing_token_raises(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            resolve_credential(env_file=tmp_path / "none.env")
        assert exc_info.value.field == "GITHUB_TOKEN"
