"""prsweep entry point.

Bulk operations over your open pull requests:
prsweep status | merge | close | resolve | force. Without an operation the
read-only status report runs. Closing needs --yes or --confirm CLOSE.
"""

import argparse
import logging
import sys
from pathlib import Path

from prsweep.adapters import AuthenticationError, GitHubAdapter
from prsweep.config import AppConfig, RunConfig, load_config
from prsweep.logging import PRSweepLogging
from prsweep.models import MergeMethod, Operation
from prsweep.services.operations import CONFIRM_TOKEN, BulkRunner

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_USAGE = 2
EXIT_FAILURES = 3
EXIT_INTERRUPTED = 130


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI with optional operation (default status)."""
    argv = argv if argv is not None else sys.argv[1:]
    parser = argparse.ArgumentParser(
        prog="prsweep",
        description="Bulk status, merge, close, conflict resolution and force-merge of your open pull requests",
    )
    parser.add_argument(
        "operation",
        nargs="?",
        default=Operation.STATUS.value,
        choices=[op.value for op in Operation],
        help="Operation to run (default: status)",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config.yaml"),
        help="Path to YAML config file",
    )
    parser.add_argument("--token", "-t", default=None, help="Forge token (overrides config and GITHUB_TOKEN)")
    parser.add_argument("--dry-run", action="store_true", help="Change nothing, only report")
    parser.add_argument(
        "--force",
        action="store_true",
        help="merge: fall back to force-merge when a merge is rejected",
    )
    parser.add_argument("--local-path", type=Path, default=None, help="Parent directory for working copies")
    parser.add_argument("--max-iterations", type=int, default=None, help="Deletion ladder iteration cap")
    parser.add_argument(
        "--merge-method",
        choices=[m.value for m in MergeMethod],
        default=None,
        help="Merge strategy for merge and resolve",
    )
    parser.add_argument("--output-dir", type=Path, default=None, help="Directory for JSON result files")
    confirm = parser.add_mutually_exclusive_group()
    confirm.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help=f"Confirm closing (same as --confirm {CONFIRM_TOKEN})",
    )
    confirm.add_argument(
        "--confirm",
        default=None,
        metavar="TOKEN",
        help=f"Confirmation token for close; must be exactly {CONFIRM_TOKEN}",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only load and validate config, then exit",
    )
    return parser.parse_args(argv)


def apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return config with CLI flags applied on top of YAML/env values."""
    run_updates: dict = {}
    if args.dry_run:
        run_updates["dry_run"] = True
    if args.force:
        run_updates["force"] = True
    if args.local_path is not None:
        run_updates["local_path"] = args.local_path
    if args.max_iterations is not None:
        run_updates["max_iterations"] = args.max_iterations
    if args.merge_method is not None:
        run_updates["merge_method"] = MergeMethod(args.merge_method)
    if args.output_dir is not None:
        run_updates["output_dir"] = args.output_dir
    updates: dict = {}
    if run_updates:
        updates["run"] = RunConfig(**{**config.run.model_dump(), **run_updates})
    if args.token:
        updates["forge"] = config.forge.model_copy(update={"token": args.token})
    return config.model_copy(update=updates) if updates else config


def main(argv: list[str] | None = None) -> int:
    """Entry point: load config, run one operation, print the tally."""
    args = parse_args(argv)

    config_path = args.config
    if not config_path.is_file() and config_path == Path("config.yaml"):
        if Path("config.example.yaml").is_file():
            config_path = Path("config.example.yaml")
            logging.basicConfig(level=logging.INFO)
            logging.getLogger("prsweep").warning("config.yaml not found, using config.example.yaml")

    try:
        config = apply_overrides(load_config(config_path), args)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_USAGE

    PRSweepLogging(config.logging).setup()
    log = logging.getLogger("prsweep")

    if args.check:
        print("Config OK:", config.forge.api_url, "token set" if config.token_resolved else "no token")
        return EXIT_OK

    token = config.token_resolved
    if not token:
        log.error("No token: pass --token or set GITHUB_TOKEN / GITHUB_TOKEN_FILE")
        return EXIT_USAGE

    confirmation = CONFIRM_TOKEN if args.yes else args.confirm
    adapter = GitHubAdapter(token=token, api_url=config.forge.api_url)
    runner = BulkRunner(adapter, config, token=token)
    try:
        results = runner.run(Operation(args.operation), confirmation=confirmation)
    except KeyboardInterrupt:
        log.warning("Interrupted; results gathered so far were saved to %s", config.run.output_dir)
        return EXIT_INTERRUPTED
    except AuthenticationError as e:
        log.error("Authentication failed: %s", e)
        return EXIT_FATAL
    except Exception as e:
        log.exception("Fatal error: %s", e)
        return EXIT_FATAL

    print(results.summary())
    return EXIT_FAILURES if results.has_failures() else EXIT_OK


def cli() -> None:
    """Console script wrapper."""
    sys.exit(main())


if __name__ == "__main__":
    sys.exit(main())
