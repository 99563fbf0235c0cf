"""Tests for prsweep.main (CLI parsing, overrides, exit codes)."""

from pathlib import Path
from unittest.mock import patch

import pytest

from prsweep.adapters.base import AuthenticationError
from prsweep.config import AppConfig
from prsweep.main import (
    EXIT_FAILURES,
    EXIT_FATAL,
    EXIT_INTERRUPTED,
    EXIT_OK,
    EXIT_USAGE,
    apply_overrides,
    main,
    parse_args,
)
from prsweep.models import MergeMethod, Operation, OperationResult, PullRequestReport
from prsweep.services.results import ResultLog


@pytest.fixture(autouse=True)
def _no_env_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN_FILE", raising=False)


def _args(tmp_path: Path, *extra: str) -> list[str]:
    return [*extra, "--config", str(tmp_path / "config.yaml"), "--output-dir", str(tmp_path)]


class TestParseArgs:
    """Command line parsing."""

    def test_default_operation_is_status(self) -> None:
        """No operation means the read-only report."""
        args = parse_args([])
        assert args.operation == "status"
        assert args.dry_run is False
        assert args.confirm is None

    def test_all_operations_accepted(self) -> None:
        """Each operation name parses."""
        for op in Operation:
            assert parse_args([op.value]).operation == op.value

    def test_unknown_operation_rejected(self) -> None:
        """Unknown operations are a usage error."""
        with pytest.raises(SystemExit):
            parse_args(["rebase-all"])

    def test_yes_and_confirm_are_exclusive(self) -> None:
        """--yes and --confirm cannot be combined."""
        with pytest.raises(SystemExit):
            parse_args(["close", "--yes", "--confirm", "CLOSE"])


class TestApplyOverrides:
    """CLI flags on top of YAML/env."""

    def test_flags_override_config(self, tmp_path: Path) -> None:
        """Run settings and token are replaced, the rest kept."""
        args = parse_args(
            [
                "merge",
                "--dry-run",
                "--force",
                "--merge-method",
                "squash",
                "--max-iterations",
                "3",
                "--local-path",
                str(tmp_path),
                "--token",
                "cli-token",
            ]
        )
        base = AppConfig()
        cfg = apply_overrides(base, args)
        assert cfg.run.dry_run is True
        assert cfg.run.force is True
        assert cfg.run.merge_method == MergeMethod.SQUASH
        assert cfg.run.max_iterations == 3
        assert cfg.run.local_path == tmp_path
        assert cfg.forge.token == "cli-token"
        assert cfg.forge.api_url == base.forge.api_url
        assert base.run.dry_run is False

    def test_no_flags_keeps_config(self) -> None:
        """Without flags the same config comes back."""
        base = AppConfig()
        assert apply_overrides(base, parse_args([])) is base

    def test_invalid_override_rejected(self) -> None:
        """Overrides are validated."""
        with pytest.raises(ValueError):
            apply_overrides(AppConfig(), parse_args(["--max-iterations", "0"]))


class TestMain:
    """main(): exit codes and wiring."""

    def test_check_only(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        """--check validates config and exits 0."""
        assert main(_args(tmp_path, "--check")) == EXIT_OK
        assert "Config OK" in capsys.readouterr().out

    def test_missing_token_is_usage_error(self, tmp_path: Path) -> None:
        """No token anywhere exits 2 before any API call."""
        with patch("prsweep.main.GitHubAdapter") as adapter_cls:
            assert main(_args(tmp_path, "status")) == EXIT_USAGE
        adapter_cls.assert_not_called()

    def test_invalid_override_is_usage_error(self, tmp_path: Path) -> None:
        """Out-of-range values exit 2."""
        assert main(_args(tmp_path, "--max-iterations", "0", "--token", "t")) == EXIT_USAGE

    def test_authentication_failure_is_fatal(self, tmp_path: Path) -> None:
        """A rejected token exits 1."""
        with patch("prsweep.main.GitHubAdapter"), patch("prsweep.main.BulkRunner") as runner_cls:
            runner_cls.return_value.run.side_effect = AuthenticationError("Bad credentials", 401)
            assert main(_args(tmp_path, "merge", "--token", "bad")) == EXIT_FATAL

    def test_yes_passes_confirmation(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        """--yes confirms close with the exact token."""
        with patch("prsweep.main.GitHubAdapter") as adapter_cls, patch("prsweep.main.BulkRunner") as runner_cls:
            runner_cls.return_value.run.return_value = ResultLog(Operation.CLOSE)
            assert main(_args(tmp_path, "close", "--yes", "--token", "t0k")) == EXIT_OK
        adapter_cls.assert_called_once_with(token="t0k", api_url="https://api.github.com")
        runner_cls.return_value.run.assert_called_once_with(Operation.CLOSE, confirmation="CLOSE")
        assert "close: 0 pull request(s)" in capsys.readouterr().out

    def test_failures_exit_code(self, tmp_path: Path) -> None:
        """Any failed record exits 3."""
        results = ResultLog(Operation.MERGE)
        results.add(OperationResult(repository="o/r", number=1, success=False, message="not mergeable"))
        with patch("prsweep.main.GitHubAdapter"), patch("prsweep.main.BulkRunner") as runner_cls:
            runner_cls.return_value.run.return_value = results
            assert main(_args(tmp_path, "merge", "--token", "t0k")) == EXIT_FAILURES

    def test_status_with_unmergeable_pull_request_exits_ok(self, tmp_path: Path) -> None:
        """The read-only report exits 0 even when nothing is mergeable."""
        results = ResultLog(Operation.STATUS)
        results.add(PullRequestReport(repository="o/r", number=1, mergeable=False, mergeable_state="dirty"))
        with patch("prsweep.main.GitHubAdapter"), patch("prsweep.main.BulkRunner") as runner_cls:
            runner_cls.return_value.run.return_value = results
            assert main(_args(tmp_path, "status", "--token", "t0k")) == EXIT_OK

    def test_interrupt_exits_130(self, tmp_path: Path) -> None:
        """Ctrl-C ends the run with a non-zero code."""
        with patch("prsweep.main.GitHubAdapter"), patch("prsweep.main.BulkRunner") as runner_cls:
            runner_cls.return_value.run.side_effect = KeyboardInterrupt()
            assert main(_args(tmp_path, "merge", "--token", "t0k")) == EXIT_INTERRUPTED
