"""Command-line entry point for the release trigger-and-verify pipeline."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence

from dotenv import load_dotenv

from .config import PipelineConfig, load_config
from .correlation import generate_dispatch_token
from .errors import ConfigError, ReleasePipelineError
from .events import LoggingListener
from .pipeline import (
    EXIT_FAILED,
    EXIT_INTERRUPTED,
    EXIT_OK,
    EXIT_USAGE,
    ReleasePipeline,
)
from .remote import GhCli, RemoteClient

logger = logging.getLogger(__name__)

ClientFactory = Callable[[PipelineConfig], RemoteClient]


def _load_local_env() -> None:
    """Best-effort load of a working-directory .env for convenience."""

    env_file = Path.cwd() / ".env"
    if env_file.exists():
        load_dotenv(env_file)


def _add_config_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="YAML file with pipeline settings.")
    parser.add_argument("--workflow")
    parser.add_argument("--repo", help="OWNER/REPO for gh; defaults to the current repository.")
    parser.add_argument("--download-dir")
    parser.add_argument("--archive-format", choices=["zip", "tar.gz"])
    parser.add_argument("--inspection", choices=["list", "extract"])
    parser.add_argument("--locator-strategy", choices=["title", "steps"])
    parser.add_argument("--fail-on-missing", action=argparse.BooleanOptionalAction, default=None)
    parser.add_argument("--keep-archive", action=argparse.BooleanOptionalAction, default=None)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logor-release",
        description="Trigger the release workflow, wait for it and verify the published bundle.",
    )
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run the full dispatch/locate/await/verify pipeline")
    _add_config_arguments(run)
    run.add_argument("--bump", help="Version component to bump (forwarded as workflow input).")
    run.add_argument("--dry-run", action=argparse.BooleanOptionalAction, default=False)

    subparsers.add_parser("token", help="Print a fresh dispatch token")

    locate = subparsers.add_parser("locate", help="Find the run carrying a dispatch token")
    _add_config_arguments(locate)
    locate.add_argument("--token", required=True)

    watch = subparsers.add_parser("watch", help="Wait for a run to complete")
    _add_config_arguments(watch)
    watch.add_argument("--run-id", type=int, required=True)

    tag = subparsers.add_parser("tag", help="Extract the release tag from a run log")
    _add_config_arguments(tag)
    tag.add_argument("--run-id", type=int, required=True)

    fetch = subparsers.add_parser("fetch", help="Download the release bundle for a tag")
    _add_config_arguments(fetch)
    fetch.add_argument("--tag", required=True)

    verify = subparsers.add_parser("verify", help="Verify a downloaded bundle against the required files")
    _add_config_arguments(verify)
    verify.add_argument("--archive", required=True)
    verify.set_defaults(keep_archive_default=True)

    return parser


def _config_from_args(args: argparse.Namespace) -> PipelineConfig:
    keep_archive = args.keep_archive
    if keep_archive is None and getattr(args, "keep_archive_default", False):
        keep_archive = True
    overrides: Dict[str, Any] = {
        "workflow": args.workflow,
        "repo": args.repo,
        "download_dir": args.download_dir,
        "archive_format": args.archive_format,
        "inspection": args.inspection,
        "locator_strategy": args.locator_strategy,
        "fail_on_missing": args.fail_on_missing,
        "keep_archive": keep_archive,
        "bump": getattr(args, "bump", None),
    }
    return load_config(args.config, overrides=overrides)


def _default_client(config: PipelineConfig) -> RemoteClient:
    return GhCli(repo=config.repo)


def _emit(payload: Dict[str, object]) -> None:
    print(json.dumps(payload, indent=2, default=str))


def main(argv: Optional[Sequence[str]] = None, *, client_factory: Optional[ClientFactory] = None) -> int:
    _load_local_env()
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.command == "token":
        _emit({"token": generate_dispatch_token()})
        return EXIT_OK

    try:
        config = _config_from_args(args)
    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_USAGE

    client = (client_factory or _default_client)(config)
    pipeline = ReleasePipeline(config, client, listener=LoggingListener())

    try:
        if args.command == "run":
            report = pipeline.run(dry_run=args.dry_run)
            _emit(report.to_dict())
            return report.exit_code
        return _run_single_step(pipeline, args)
    except KeyboardInterrupt:
        # Partially downloaded archives may remain in the download directory.
        print("Interrupted.", file=sys.stderr)
        return EXIT_INTERRUPTED


def _run_single_step(pipeline: ReleasePipeline, args: argparse.Namespace) -> int:
    try:
        if args.command == "locate":
            _emit({"token": args.token, "run_id": pipeline.locate(args.token)})
            return EXIT_OK
        if args.command == "watch":
            state = pipeline.watch(args.run_id)
            _emit({"run_id": args.run_id, **state.model_dump(mode="json")})
            return EXIT_OK
        if args.command == "tag":
            _emit({"run_id": args.run_id, "tag": pipeline.extract_tag(args.run_id)})
            return EXIT_OK
        if args.command == "fetch":
            _emit({"tag": args.tag, "path": str(pipeline.fetch(args.tag))})
            return EXIT_OK
        if args.command == "verify":
            handle, verification = pipeline.inspect_and_verify(Path(args.archive))
            _emit({"archive": handle.to_dict(), "verification": verification.to_dict()})
            return pipeline.exit_code_for(verification)
    except ReleasePipelineError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_FAILED

    raise ValueError(f"Unknown command '{args.command}'")


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
