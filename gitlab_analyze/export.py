# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Write one CSV report per author."""

from __future__ import annotations

import csv
import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, List, Optional, Set, Union

from .common_types import StatsByAuthor
from .projects_file import ProjectInfo, project_info_map

_logger = logging.getLogger(__name__)

CSV_HEADER = ["User", "Project Name", "Project Path", "Additions", "Deletions", "Changes", "Total"]
_UNSAFE_FILENAME_RE = re.compile(r"[^\w.@-]+", re.UNICODE)


def _safe_filename_part(text: str) -> str:
    return _UNSAFE_FILENAME_RE.sub("_", str(text or "").strip()).strip("_") or "unknown"


def report_filename(
    author: str,
    start_date: Union[date, str],
    end_date: Union[date, str],
    timestamp: str,
    suffix: str = "",
) -> str:
    return f"gitlab_stats_{_safe_filename_part(author)}{suffix}_{start_date}_{end_date}_{timestamp}.csv"


def _unique_report_filename(
    used: Set[str],
    author: str,
    start_date: Union[date, str],
    end_date: Union[date, str],
    timestamp: str,
) -> str:
    """Distinct authors can sanitize to the same name ("John Doe" / "John_Doe"); number the later ones."""
    name = report_filename(author, start_date, end_date, timestamp)
    n = 1
    # Case-insensitive filesystems treat "Alice" and "alice" as one file.
    while name.lower() in used:
        n += 1
        name = report_filename(author, start_date, end_date, timestamp, suffix=f"_{n}")
    used.add(name.lower())
    return name


def export_stats_to_csv(
    stats: StatsByAuthor,
    start_date: Union[date, str],
    end_date: Union[date, str],
    projects: Iterable[ProjectInfo],
    output_dir: Union[str, Path] = "output",
    *,
    now: Optional[datetime] = None,
) -> List[Path]:
    """Write `gitlab_stats_<author>_<start>_<end>_<timestamp>.csv` files and return their paths.

    Files are UTF-8 with BOM so spreadsheet apps detect the encoding.
    """
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    timestamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    infos = project_info_map(projects)

    written: List[Path] = []
    used: Set[str] = set()
    for author, user_stats in stats.items():
        path = out_dir / _unique_report_filename(used, author, start_date, end_date, timestamp)
        with path.open("w", encoding="utf-8-sig", newline="") as f:
            w = csv.writer(f)
            w.writerow(CSV_HEADER)
            for project_id in sorted(user_stats.projects):
                ps = user_stats.projects[project_id]
                info = infos.get(project_id)
                w.writerow([
                    author,
                    info.name if info else "",
                    info.path_with_namespace if info else "",
                    ps.additions,
                    ps.deletions,
                    ps.changes,
                    ps.additions + ps.deletions,
                ])
        _logger.debug(f"Wrote {path}")
        written.append(path)
    return written
