# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Run the commit-statistics pipeline over several projects and merge the results."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, TYPE_CHECKING

from .common_types import StatsByAuthor
from .config import PipelineConfig
from .exceptions import FatalListingError, GitLabAPIError, NoProjectsSucceededError
from .merge import merge_project_stats
from .pipeline import ProjectStatsPipeline
from .projects_file import ProjectInfo

if TYPE_CHECKING:  # pragma: no cover
    from . import GitLabAPIClient

_logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    merged: StatsByAuthor
    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, BaseException] = field(default_factory=dict)


def analyze_projects(
    api: "GitLabAPIClient",
    project_ids: Sequence[str],
    start_date: date,
    end_date: date,
    *,
    config: Optional[PipelineConfig] = None,
    target_users: Optional[Iterable[str]] = None,
    project_infos: Optional[Mapping[str, ProjectInfo]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> AnalysisResult:
    """Analyze projects one after another; a failed project is reported and skipped.

    Raises:
        NoProjectsSucceededError: every project run failed.
    """
    pipeline = ProjectStatsPipeline(api, config, sleep=sleep)
    infos = project_infos or {}
    ids = [str(pid).strip() for pid in project_ids if str(pid).strip()]

    per_project: List[StatsByAuthor] = []
    result = AnalysisResult(merged={})
    for i, project_id in enumerate(ids, 1):
        info = infos.get(project_id)
        if info:
            _logger.info(f"[{i}/{len(ids)}] Analyzing project: {info.name} ({info.path_with_namespace}) [ID: {project_id}]")
        else:
            _logger.info(f"[{i}/{len(ids)}] Analyzing project ID: {project_id} (no project metadata)")
        try:
            stats = pipeline.run(project_id, start_date, end_date)
        except (FatalListingError, GitLabAPIError) as e:
            _logger.warning(f"⚠️  Skipping project {project_id}: {e}")
            result.failed[project_id] = e
            continue
        per_project.append(stats)
        result.succeeded.append(project_id)

    if ids and not result.succeeded:
        raise NoProjectsSucceededError(result.failed)

    users = [u for u in (target_users or []) if u]
    if users:
        _logger.info(f"Only counting these users: {', '.join(users)}")
    result.merged = merge_project_stats(per_project, users)
    return result
