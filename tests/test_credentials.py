import pytest

from packt_epub.credentials import resolve_token
from packt_epub.errors import CredentialError


def test_explicit_token_is_used_as_is(tmp_path, monkeypatch):
    monkeypatch.setenv("PACKT_TOKEN", "from-env")

    assert resolve_token("explicit", tmp_path / "none") == "explicit"


def test_environment_beats_config_file(tmp_path, monkeypatch):
    config = tmp_path / ".packt_config"
    config.write_text("TOKEN=from-file\nREFRESH=r\n", encoding="utf-8")
    monkeypatch.setenv("PACKT_TOKEN", "from-env")

    assert resolve_token(None, config) == "from-env"


def test_config_file_with_crlf_line_endings(tmp_path, monkeypatch):
    monkeypatch.delenv("PACKT_TOKEN", raising=False)
    config = tmp_path / ".packt_config"
    config.write_bytes(b"TOKEN=abc.def\r\nREFRESH=xyz")

    assert resolve_token(None, config) == "abc.def"


def test_missing_token_raises(tmp_path, monkeypatch):
    monkeypatch.delenv("PACKT_TOKEN", raising=False)
    config = tmp_path / ".packt_config"
    config.write_text("REFRESH=only\n", encoding="utf-8")

    with pytest.raises(CredentialError):
        resolve_token(None, config)
