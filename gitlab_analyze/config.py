# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Configuration for gitlab-analyze.

Two layers:
- `PipelineConfig`: static knobs of the commit-statistics pipeline (worker count,
  retry schedule, page size). Immutable and passed in explicitly.
- `AppConfig`: values the CLI reads from the environment (and an optional `.env`
  file via python-dotenv): GitLab URL/token, default projects and date window,
  author allow-list.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import find_dotenv, load_dotenv

_logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
DEFAULT_API_VERSION = "v4"
DEFAULT_PROJECT_FILE = "projects.xlsx"
DEFAULT_OUTPUT_DIR = "output"


@dataclass(frozen=True)
class PipelineConfig:
    worker_count: int = 10
    page_size: int = 100
    max_attempts: int = 5
    initial_backoff_s: float = 1.0
    # Upper bound on one backoff sleep; without it 2**n grows unbounded.
    max_backoff_s: float = 30.0
    # Fixed pause between listing pages (not adaptive).
    page_interval_s: float = 0.2
    queue_size: int = 100
    progress_every: int = 10

    def __post_init__(self) -> None:
        if self.worker_count < 1:
            raise ValueError(f"worker_count must be >= 1, got {self.worker_count}")
        if self.page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {self.page_size}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.initial_backoff_s < 0 or self.max_backoff_s < 0 or self.page_interval_s < 0:
            raise ValueError("backoff and page interval must be non-negative")
        if self.queue_size < 1:
            raise ValueError(f"queue_size must be >= 1, got {self.queue_size}")
        if self.progress_every < 1:
            raise ValueError(f"progress_every must be >= 1, got {self.progress_every}")


def parse_date(text: str) -> date:
    """Parse a strict YYYY-MM-DD calendar date."""
    s = str(text or "").strip()
    try:
        return datetime.strptime(s, DATE_FORMAT).date()
    except ValueError:
        raise ValueError(f"invalid date {s!r}, expected YYYY-MM-DD") from None


def split_csv(text: Optional[str]) -> List[str]:
    """Split a comma-separated list, trimming whitespace and dropping empty items."""
    return [part.strip() for part in str(text or "").split(",") if part.strip()]


def _env(key: str, default: str = "") -> str:
    v = os.environ.get(key)
    return v if v else default


def _env_bool(key: str, default: bool) -> bool:
    v = os.environ.get(key)
    if v is None or not v.strip():
        return default
    return v.strip().lower() not in ("0", "false", "no", "off")


def _default_window(today: date) -> Tuple[str, str]:
    return today.replace(day=1).strftime(DATE_FORMAT), today.strftime(DATE_FORMAT)


@dataclass(frozen=True)
class AppConfig:
    gitlab_url: str = ""
    gitlab_token: Optional[str] = None
    api_version: str = DEFAULT_API_VERSION
    verify_ssl: bool = True
    default_projects: Tuple[str, ...] = ()
    default_start_date: str = ""
    default_end_date: str = ""
    default_project_file: str = DEFAULT_PROJECT_FILE
    target_users: Tuple[str, ...] = ()
    output_dir: str = DEFAULT_OUTPUT_DIR
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)


def load_config(env_file: Optional[Path] = None, *, today: Optional[date] = None) -> AppConfig:
    """Build an AppConfig from the environment.

    A `.env` file (cwd, or `env_file`) is loaded first; variables already set in
    the process environment win over the file.
    """
    path = str(env_file) if env_file else find_dotenv(usecwd=True)
    loaded = bool(path) and load_dotenv(dotenv_path=path)
    if not loaded:
        _logger.debug("No .env file loaded; using process environment only")

    start_default, end_default = _default_window(today or date.today())
    return AppConfig(
        gitlab_url=_env("GITLAB_URL").rstrip("/"),
        gitlab_token=_env("GITLAB_TOKEN") or None,
        api_version=_env("API_VERSION", DEFAULT_API_VERSION),
        verify_ssl=_env_bool("GITLAB_VERIFY_SSL", True),
        default_projects=tuple(split_csv(_env("DEFAULT_PROJECTS"))),
        default_start_date=_env("DEFAULT_START_DATE", start_default),
        default_end_date=_env("DEFAULT_END_DATE", end_default),
        default_project_file=_env("DEFAULT_PROJECT_FILE", DEFAULT_PROJECT_FILE),
        target_users=tuple(split_csv(_env("TARGET_USERS"))),
        output_dir=_env("OUTPUT_DIR", DEFAULT_OUTPUT_DIR),
    )
