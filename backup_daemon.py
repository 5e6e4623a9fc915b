"""Command line interface for the WebDAV database backup daemon."""
from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Iterable, Optional

from dav_backup.config import ConfigError, Settings
from dav_backup.dump import DatabaseDumper
from dav_backup.jobs import BackupRunner
from dav_backup.scheduler import BackupScheduler
from dav_backup.webdav import WebDAVClient

ENV_PREFIX = "DAV_BACKUP_"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Dump a database every 4 hours, upload it to WebDAV and keep 3 days of backups.",
    )
    parser.add_argument(
        "--baseURL",
        "--base-url",
        dest="base_url",
        default=os.environ.get(ENV_PREFIX + "BASE_URL"),
        help="WebDAV root of the server, e.g. https://cloud.example.com/remote.php/dav/files/",
    )
    parser.add_argument(
        "--username", default=os.environ.get(ENV_PREFIX + "USERNAME"), help="WebDAV user name."
    )
    parser.add_argument(
        "--password",
        default=os.environ.get(ENV_PREFIX + "PASSWORD"),
        help="WebDAV password (prefer the DAV_BACKUP_PASSWORD environment variable).",
    )
    parser.add_argument("--dump-program", default=None, help="Dump executable (default: pg_dumpall).")
    parser.add_argument("--work-dir", default=None, help="Directory where dumps are staged before upload.")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one backup cycle and one retention cycle, then exit.",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase logging verbosity.")
    return parser


def configure_logging(level: int) -> None:
    if level >= 2:
        log_level = logging.DEBUG
    elif level == 1:
        log_level = logging.INFO
    else:
        log_level = logging.WARNING
    logging.basicConfig(level=log_level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def load_settings(args: argparse.Namespace) -> Settings:
    try:
        return Settings.from_options(
            args.base_url,
            args.username,
            args.password,
            dump_program=args.dump_program,
            work_dir=args.work_dir,
        )
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)


def build_runner(settings: Settings) -> BackupRunner:
    return BackupRunner(
        settings=settings,
        client=WebDAVClient(settings),
        dumper=DatabaseDumper(settings),
    )


def handle_once(runner: BackupRunner) -> int:
    backup = runner.run_backup_cycle()
    retention = runner.run_retention_cycle()
    failed = [result for result in (backup, retention) if not result.success]
    for result in failed:
        print(f"Cycle failed at '{result.step}': {result.error}", file=sys.stderr)
    return 1 if failed else 0


def main(argv: Optional[Iterable[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    settings = load_settings(args)
    runner = build_runner(settings)

    try:
        if args.once:
            sys.exit(handle_once(runner))
        BackupScheduler(settings, runner).run_forever()
    finally:
        runner.client.close()


if __name__ == "__main__":
    main()
