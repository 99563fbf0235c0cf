"""Tests for prsweep.config (YAML + env loading, token resolution)."""

from pathlib import Path

import pytest

from prsweep.config import AppConfig, ForgeConfig, RunConfig, load_config
from prsweep.models import MergeMethod

YAML = """\
forge:
  token: ${MY_TOKEN}
  api_url: https://ghe.example.com/api/v3
  author: someone
git:
  name: sweeper
run:
  dry_run: true
  merge_method: squash
  force_methods: [squash, rebase]
  max_iterations: 4
  request_delay_seconds: 0
logging:
  level: DEBUG
"""


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("GITHUB_TOKEN", "GITHUB_TOKEN_FILE", "MY_TOKEN", "PRSWEEP_DRY_RUN", "GITHUB_API_URL"):
        monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    """Defaults: github.com, merge method, 10 iterations, 2s delay."""
    cfg = AppConfig()
    assert cfg.forge.api_url == "https://api.github.com"
    assert cfg.run.merge_method == MergeMethod.MERGE
    assert cfg.run.force_methods == [MergeMethod.MERGE, MergeMethod.SQUASH, MergeMethod.REBASE]
    assert cfg.run.max_iterations == 10
    assert cfg.run.request_delay_seconds == 2.0
    assert cfg.run.dry_run is False


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    """A missing config file is not an error."""
    cfg = load_config(tmp_path / "nope.yaml")
    assert cfg.forge.api_url == "https://api.github.com"


def test_load_yaml_with_env_substitution(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """YAML sections are loaded and ${VAR} is replaced from the environment."""
    monkeypatch.setenv("MY_TOKEN", "from-env")
    path = tmp_path / "config.yaml"
    path.write_text(YAML, encoding="utf-8")
    cfg = load_config(path)

    assert cfg.forge.token == "from-env"
    assert cfg.token_resolved == "from-env"
    assert cfg.forge.api_url == "https://ghe.example.com/api/v3"
    assert cfg.forge.author == "someone"
    assert cfg.git.name == "sweeper"
    assert cfg.run.dry_run is True
    assert cfg.run.merge_method == MergeMethod.SQUASH
    assert cfg.run.force_methods == [MergeMethod.SQUASH, MergeMethod.REBASE]
    assert cfg.run.max_iterations == 4
    assert cfg.logging.level == "DEBUG"


def test_unset_placeholder_falls_back_to_github_token(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """An unresolved ${VAR} token is ignored in favour of GITHUB_TOKEN."""
    monkeypatch.setenv("GITHUB_TOKEN", "gh-env")
    path = tmp_path / "config.yaml"
    path.write_text(YAML, encoding="utf-8")
    cfg = load_config(path)
    assert cfg.forge.token == "${MY_TOKEN}"
    assert cfg.token_resolved == "gh-env"


def test_token_from_secret_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """GITHUB_TOKEN_FILE points at a file holding the token."""
    secret = tmp_path / "token"
    secret.write_text("file-token\n", encoding="utf-8")
    monkeypatch.setenv("GITHUB_TOKEN_FILE", str(secret))
    cfg = load_config(tmp_path / "missing.yaml")
    assert cfg.token_resolved == "file-token"


def test_env_prefix_applies(monkeypatch: pytest.MonkeyPatch) -> None:
    """Section env prefixes override defaults."""
    monkeypatch.setenv("PRSWEEP_DRY_RUN", "true")
    monkeypatch.setenv("GITHUB_API_URL", "https://example.test/api")
    assert RunConfig().dry_run is True
    assert ForgeConfig().api_url == "https://example.test/api"


def test_invalid_iteration_cap_rejected() -> None:
    """max_iterations must be at least 1."""
    with pytest.raises(ValueError):
        RunConfig(max_iterations=0)
