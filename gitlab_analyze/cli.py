"""
CLI for gitlab-analyze.

CLI glue lives here so the pipeline (`pipeline.py`) and the batch driver
(`analyze.py`) stay importable without argparse/env side effects.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional, Sequence

import argparse
import dataclasses
import logging
import time

from . import GitLabAPIClient
from .analyze import analyze_projects
from .api.projects import list_projects
from .config import AppConfig, load_config, parse_date, split_csv
from .exceptions import GitLabAPIError, NoProjectsSucceededError, ProjectFileError
from .export import export_stats_to_csv
from .projects_file import ProjectInfo, load_project_infos, project_info_map

logger = logging.getLogger(__name__)


def _truncate(s: str, max_len: int) -> str:
    if len(s) <= max_len:
        return s
    return s[: max_len - 3] + "..."


def _make_client(cfg: AppConfig) -> GitLabAPIClient:
    return GitLabAPIClient(
        token=cfg.gitlab_token,
        base_url=cfg.gitlab_url or "https://gitlab.com",
        api_version=cfg.api_version,
        verify_ssl=cfg.verify_ssl,
    )


def _log_rest_summary(client: GitLabAPIClient) -> None:
    s = client.get_rest_call_stats()
    logger.debug(
        f"REST calls: {s['total']} (ok {s['success_total']}, errors {s['error_total']}, "
        f"{s['time_total_s']:.1f}s); errors by status: {s['errors_by_status']}"
    )


def _load_infos(path: str) -> List[ProjectInfo]:
    if not path:
        return []
    logger.info(f"Reading project info from {path}...")
    try:
        infos = load_project_infos(path)
    except ProjectFileError as e:
        logger.warning(f"⚠️  {e}; continuing without project names")
        return []
    logger.info(f"Loaded info for {len(infos)} projects")
    return infos


def _cmd_analyze(args: argparse.Namespace, cfg: AppConfig) -> int:
    t0 = time.monotonic()
    try:
        start_date: date = parse_date(args.start_date)
        end_date: date = parse_date(args.end_date)
    except ValueError as e:
        logger.error(f"ERROR: {e}")
        return 1
    if end_date < start_date:
        logger.error(f"ERROR: end date {end_date} is before start date {start_date}")
        return 1

    project_ids = split_csv(args.projects)
    if not project_ids:
        logger.error("ERROR: no projects given (use --projects or DEFAULT_PROJECTS)")
        return 1

    infos = _load_infos(args.file)
    pipeline_cfg = cfg.pipeline if args.workers is None else dataclasses.replace(cfg.pipeline, worker_count=args.workers)
    users = split_csv(args.users) if args.users is not None else list(cfg.target_users)

    logger.info("")
    logger.info(f"Date range: {start_date} to {end_date}")
    logger.info(f"Projects: {len(project_ids)}")
    logger.info("")

    client = _make_client(cfg)
    try:
        result = analyze_projects(
            client,
            project_ids,
            start_date,
            end_date,
            config=pipeline_cfg,
            target_users=users,
            project_infos=project_info_map(infos),
        )
    except NoProjectsSucceededError as e:
        logger.error(f"ERROR: {e}")
        return 1
    finally:
        _log_rest_summary(client)

    logger.info("Exporting results...")
    try:
        paths = export_stats_to_csv(result.merged, start_date, end_date, infos, args.output_dir)
    except OSError as e:
        logger.error(f"ERROR: failed to export results: {e}")
        return 1

    if result.failed:
        logger.warning(f"⚠️  {len(result.failed)} project(s) failed: {', '.join(result.failed)}")
    logger.info(f"Done in {time.monotonic() - t0:.1f}s; wrote {len(paths)} report(s) to {args.output_dir}")
    return 0


def _cmd_list(args: argparse.Namespace, cfg: AppConfig) -> int:
    client = _make_client(cfg)
    logger.info("Fetching project list...")
    try:
        projects = list_projects(client, config=cfg.pipeline)
    except GitLabAPIError as e:
        logger.error(f"ERROR: failed to list projects: {e}")
        return 1

    print(f"\nFound {len(projects)} projects:\n")
    print(f"{'ID':<10} {'Name':<30} {'Path':<50} Description")
    print("-" * 120)
    for p in projects:
        print(
            f"{p.id:<10} {_truncate(p.name, 28):<30} {_truncate(p.path_with_namespace, 48):<50} "
            f"{_truncate(p.description, 30)}"
        )
    print()
    return 0


def build_parser(cfg: AppConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitlab-analyze",
        description="Per-author code contribution statistics across GitLab projects.",
        epilog="Examples:\n"
               "  %(prog)s analyze -p 123,456 -s 2024-01-01 -e 2024-01-31\n"
               "  %(prog)s analyze -p 123 -u alice,bob -f projects.xlsx\n"
               "  %(prog)s list",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    ap = sub.add_parser("analyze", help="Analyze per-author code changes")
    ap.add_argument("-p", "--projects", default=",".join(cfg.default_projects),
                    help="Comma-separated project IDs (default: DEFAULT_PROJECTS)")
    ap.add_argument("-s", "--start-date", default=cfg.default_start_date,
                    help=f"Start date, YYYY-MM-DD, inclusive (default: {cfg.default_start_date})")
    ap.add_argument("-e", "--end-date", default=cfg.default_end_date,
                    help=f"End date, YYYY-MM-DD, inclusive (default: {cfg.default_end_date})")
    ap.add_argument("-f", "--file", default=cfg.default_project_file,
                    help=f"Project info Excel file (default: {cfg.default_project_file})")
    ap.add_argument("-u", "--users", default=None,
                    help="Comma-separated author allow-list (default: TARGET_USERS)")
    ap.add_argument("-o", "--output-dir", default=cfg.output_dir,
                    help=f"Directory for CSV reports (default: {cfg.output_dir})")
    ap.add_argument("--workers", type=int, default=None,
                    help=f"Concurrent commit-detail workers (default: {cfg.pipeline.worker_count})")
    ap.set_defaults(func=_cmd_analyze)

    lp = sub.add_parser("list", help="List projects accessible with the configured token")
    lp.set_defaults(func=_cmd_list)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    cfg = load_config()
    parser = build_parser(cfg)
    args = parser.parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s")
    if args.command == "analyze" and args.workers is not None and args.workers < 1:
        parser.error("--workers must be >= 1")
    return int(args.func(args, cfg))
