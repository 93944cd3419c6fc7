from __future__ import annotations

from pathlib import Path

import pytest

from twinrender.core.config import (
    CONFIG_FILENAME,
    AppConfig,
    load_config,
    merge_environment,
)
from twinrender.core.exceptions import ConfigError


def _write_config(root: Path, content: str) -> None:
    (root / CONFIG_FILENAME).write_text(content, encoding="utf-8")


def test_missing_file_yields_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert config.retry_budget == 5
    assert config.bindings == {}
    assert config.fragment_dir == (tmp_path / "fragments").resolve()
    assert config.plugins == {"twinrender": "twinrender.builtin_fragments"}


def test_environment_tables_override_defaults(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
retry_budget = 3
fragment_dir = "pages"

[bindings]
api = "http://localhost:8000"
auth = "http://localhost:9000"

[env.production]
retry_budget = 7
strip_comments = true

[env.production.bindings]
api = "https://api.example.com"
""",
    )

    local = load_config(tmp_path)
    production = load_config(tmp_path, "production")

    assert local.retry_budget == 3
    assert local.strip_comments is False
    assert local.fragment_dir == (tmp_path / "pages").resolve()
    assert production.retry_budget == 7
    assert production.strip_comments is True
    assert production.bindings == {
        "api": "https://api.example.com",
        "auth": "http://localhost:9000",
    }


def test_merge_environment_without_name_drops_env_tables() -> None:
    data = {"retry_budget": 2, "env": {"x": {"retry_budget": 9}}}

    assert merge_environment(data, None) == {"retry_budget": 2}
    assert merge_environment(data, "unknown") == {"retry_budget": 2}
    with pytest.raises(ConfigError):
        merge_environment({"env": {"x": 1}}, "x")


@pytest.mark.parametrize(
    "content",
    [
        "retry_budget = [",
        "unknown_key = 1",
        "retry_budget = 0",
        'cors_origins = "("',
        "channel_timeout = -1",
    ],
)
def test_invalid_configuration_raises(tmp_path: Path, content: str) -> None:
    _write_config(tmp_path, content)

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_origin_allowed_uses_full_match() -> None:
    config = AppConfig(cors_origins=r"https://(www\.)?example\.com")

    assert config.origin_allowed("https://example.com")
    assert config.origin_allowed("https://www.example.com")
    assert not config.origin_allowed("https://example.com.evil.test")
    assert not config.origin_allowed(None)


def test_plugin_dirs_resolve_packages_and_directories(tmp_path: Path) -> None:
    (tmp_path / "widgets").mkdir()
    config = AppConfig(plugins={"twinrender": "twinrender.builtin_fragments", "ui": "widgets"})

    dirs = config.plugin_dirs(tmp_path)

    assert (dirs["twinrender"] / "list" / "fragment.html").exists()
    assert dirs["ui"] == (tmp_path / "widgets").resolve()


def test_unknown_plugin_raises(tmp_path: Path) -> None:
    config = AppConfig(plugins={"x": "definitely_not_a_package_dir"})

    with pytest.raises(ConfigError, match="neither a directory nor a package"):
        config.plugin_dirs(tmp_path)
