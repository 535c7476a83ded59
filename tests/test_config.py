from pathlib import Path

import pytest

from mist_cache.config import load_settings

ENV_VARS = ("CACHE_CONFIG_FILE", "CACHE_FILE", "CACHE_DIR", "CACHE_TTL", "ORG_ID", "LOG_LEVEL", "LOG_DIR", "XDG_CACHE_HOME")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_env_defaults(monkeypatch, tmp_path):
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))
    settings = load_settings()

    assert settings.cache_dir == tmp_path / "mist-cache"
    assert settings.cache_path == tmp_path / "mist-cache" / "cache.json"
    assert settings.snapshot_dir == tmp_path / "mist-cache" / "apis"
    assert settings.cache_ttl == 0
    assert settings.org_id is None
    assert settings.log_level == "INFO"
    assert settings.log_dir is None


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("CACHE_DIR", str(tmp_path))
    monkeypatch.setenv("CACHE_FILE", "inventory.json")
    monkeypatch.setenv("CACHE_TTL", "300")
    monkeypatch.setenv("ORG_ID", " org-1 ")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))

    settings = load_settings()

    assert settings.cache_path == tmp_path / "inventory.json"
    assert settings.cache_ttl == 300
    assert settings.org_id == "org-1"
    assert settings.log_level == "DEBUG"
    assert settings.log_dir == tmp_path / "logs"


def test_absolute_cache_file_is_kept(monkeypatch, tmp_path):
    target = tmp_path / "elsewhere" / "c.json"
    monkeypatch.setenv("CACHE_DIR", str(tmp_path))
    monkeypatch.setenv("CACHE_FILE", str(target))
    assert load_settings().cache_path == target


@pytest.mark.parametrize(
    "name, value",
    [("CACHE_TTL", "soon"), ("CACHE_TTL", "-5"), ("LOG_LEVEL", "LOUD")],
)
def test_invalid_env_values(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(RuntimeError):
        load_settings()


def test_yaml_config(monkeypatch, tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text(
        "\n".join(
            [
                "cache:",
                f"  dir: {tmp_path / 'cache'}",
                "  file: inv.json",
                "  ttl: 120",
                "org_id: org-7",
                "runtime:",
                "  log_level: warning",
                f"  log_dir: {tmp_path / 'logs'}",
            ]
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("CACHE_CONFIG_FILE", str(config))
    monkeypatch.setenv("CACHE_TTL", "not used in yaml mode")

    settings = load_settings()

    assert settings.cache_dir == tmp_path / "cache"
    assert settings.cache_path == tmp_path / "cache" / "inv.json"
    assert settings.cache_ttl == 120
    assert settings.org_id == "org-7"
    assert settings.log_level == "WARNING"
    assert settings.log_dir == tmp_path / "logs"


def test_yaml_empty_file_uses_defaults(monkeypatch, tmp_path):
    config = tmp_path / "empty.yaml"
    config.write_text("", encoding="utf-8")
    monkeypatch.setenv("CACHE_CONFIG_FILE", str(config))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg"))

    settings = load_settings()

    assert settings.cache_path == Path(tmp_path / "xdg" / "mist-cache" / "cache.json")


@pytest.mark.parametrize(
    "content",
    ["- a\n- b\n", "cache: [1, 2]\n", "cache:\n  ttl: forever\n", "runtime: 5\n", "org_id: 12\n", "cache: {ttl: true}\n"],
)
def test_yaml_invalid(monkeypatch, tmp_path, content):
    config = tmp_path / "bad.yaml"
    config.write_text(content, encoding="utf-8")
    monkeypatch.setenv("CACHE_CONFIG_FILE", str(config))
    with pytest.raises(RuntimeError):
        load_settings()


def test_yaml_missing_file(monkeypatch, tmp_path):
    monkeypatch.setenv("CACHE_CONFIG_FILE", str(tmp_path / "absent.yaml"))
    with pytest.raises(RuntimeError, match="not found"):
        load_settings()


def test_yaml_parse_error(monkeypatch, tmp_path):
    config = tmp_path / "broken.yaml"
    config.write_text("cache: {dir: [unclosed\n", encoding="utf-8")
    monkeypatch.setenv("CACHE_CONFIG_FILE", str(config))
    with pytest.raises(RuntimeError, match="Failed to read"):
        load_settings()
