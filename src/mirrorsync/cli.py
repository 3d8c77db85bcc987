from __future__ import annotations

import argparse
from pathlib import Path
import sys

from mirrorsync.config import DEFAULT_MAX_RETRIES, SyncConfig, get_job, load_config
from mirrorsync.reporting import configure_logging
from mirrorsync.run_service import EXIT_INVALID_CONFIG, EXIT_SUCCESS, RunSummary, run_jobs, run_sync


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}") from None
    if parsed < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mirror-sync",
        description="One-way verified directory mirror",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Mirror a source directory into a replica")
    run_parser.add_argument("--source", type=Path, help="Directory to copy from")
    run_parser.add_argument("--replica", type=Path, help="Directory to make identical to the source")
    run_parser.add_argument("--retries", type=_positive_int, default=DEFAULT_MAX_RETRIES)
    run_parser.add_argument(
        "--ntfs-permissions",
        action="store_true",
        help="Also copy access-control entries",
    )
    run_parser.add_argument("--exclude", action="append", default=[], metavar="PATTERN")
    run_parser.add_argument("--config", type=Path, help="Run the jobs of a YAML/JSON config instead")
    run_parser.add_argument("--job", help="Run only one job by name")
    run_parser.add_argument("--verbose", action="store_true")
    run_parser.add_argument("--log-file", type=Path, default=None)

    validate_parser = subparsers.add_parser("validate-config", help="Validate config")
    validate_parser.add_argument("--config", required=True, type=Path)

    list_parser = subparsers.add_parser("list", help="List jobs and their source/replica pairs")
    list_parser.add_argument("--config", required=True, type=Path)
    list_parser.add_argument("--job", help="List only one job by name")

    return parser


def _print_summary(job_name: str, source: Path, replica: Path, exit_code: int, summary: RunSummary) -> None:
    print(
        f"[{job_name}] {source} -> {replica} | errors={summary.errors} warnings={summary.warnings} "
        f"copied={summary.files_copied} failed={summary.files_failed} "
        f"deleted={summary.entries_deleted} exit={exit_code}"
    )


def cmd_validate(config_path: Path) -> int:
    try:
        config = load_config(config_path)
    except Exception as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        return EXIT_INVALID_CONFIG

    print(f"Valid config: {config_path} ({len(config.jobs)} job(s))")
    for job in config.jobs:
        print(
            f"  - job={job.name} "
            f"maxRetries={job.sync.max_retries} "
            f"ntfsPermissions={str(job.sync.ntfs_permissions).lower()} "
            f"excludes={len(job.sync.excludes)}"
        )
    return EXIT_SUCCESS


def cmd_list(config_path: Path, job_name: str | None) -> int:
    try:
        config = load_config(config_path)
        jobs = get_job(config, job_name)
    except Exception as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        return EXIT_INVALID_CONFIG

    for job in jobs:
        print(f"job: {job.name}")
        print(f"  - {job.sync.source} -> {job.sync.replica}")
    return EXIT_SUCCESS


def cmd_run(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    configure_logging(log_file=args.log_file)

    if args.config is not None:
        if args.source is not None or args.replica is not None:
            parser.error("run takes either --config or --source/--replica, not both")
        exit_code, results = run_jobs(args.config, job_name=args.job, verbose=args.verbose)
        for result in results:
            _print_summary(result.name, result.config.source, result.config.replica, result.exit_code, result.summary)
        return exit_code

    if args.source is None or args.replica is None:
        parser.error("run needs --config or both --source and --replica")

    config = SyncConfig(
        source=args.source,
        replica=args.replica,
        max_retries=args.retries,
        ntfs_permissions=args.ntfs_permissions,
        verbose_log=args.verbose,
        excludes=list(args.exclude),
    )
    exit_code, summary = run_sync(config)
    _print_summary("sync", config.source, config.replica, exit_code, summary)
    return exit_code


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "validate-config":
        return cmd_validate(args.config)
    if args.command == "list":
        return cmd_list(config_path=args.config, job_name=args.job)
    if args.command == "run":
        return cmd_run(args, parser)

    parser.print_help()
    return EXIT_INVALID_CONFIG


if __name__ == "__main__":
    raise SystemExit(main())
