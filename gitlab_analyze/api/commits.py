# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""GitLab commit listing + commit detail API.

Resources:
  GET /api/v4/projects/{project_id}/repository/commits?since=..&until=..&all=true&per_page=100&page=N
  GET /api/v4/projects/{project_id}/repository/commits/{sha}

No caching: every run hits the API. Dates are trusted to the server-side filter;
nothing is re-filtered client-side.
"""

from __future__ import annotations

import logging
import time
import urllib.parse
from datetime import date
from typing import Any, Callable, Dict, Iterator, List, TYPE_CHECKING

from ..common_types import CommitDiffStats, CommitRef
from ..config import PipelineConfig
from ..exceptions import FatalListingError, GitLabAPIError, GitLabDecodeError
from ..retry import call_with_retries

if TYPE_CHECKING:  # pragma: no cover
    from .. import GitLabAPIClient

_logger = logging.getLogger(__name__)

LABEL_LIST = "commits_list"
LABEL_DETAIL = "commit_detail"
API_CALL_FORMAT_LIST = "GET /api/v4/projects/{project_id}/repository/commits?since=..&until=..&all=true&per_page=100&page=N"
API_CALL_FORMAT_DETAIL = "GET /api/v4/projects/{project_id}/repository/commits/{sha}"


def project_path(project_id: str) -> str:
    """`/projects/:id` accepts numeric ids or URL-encoded paths (`group%2Fproject`)."""
    return urllib.parse.quote(str(project_id).strip(), safe="")


def commit_list_params(start_date: date, end_date: date, *, page: int, per_page: int) -> Dict[str, Any]:
    # Both ends inclusive: `until` covers the whole end day.
    return {
        "since": f"{start_date.isoformat()}T00:00:00",
        "until": f"{end_date.isoformat()}T23:59:59",
        "all": "true",
        "per_page": int(per_page),
        "page": int(page),
    }


def fetch_commit_page(
    api: "GitLabAPIClient",
    project_id: str,
    start_date: date,
    end_date: date,
    *,
    page: int,
    config: PipelineConfig,
    sleep: Callable[[float], None] = time.sleep,
) -> List[CommitRef]:
    endpoint = f"/projects/{project_path(project_id)}/repository/commits"
    params = commit_list_params(start_date, end_date, page=page, per_page=config.page_size)
    data = call_with_retries(
        lambda: api.get(endpoint, params=params, label=LABEL_LIST),
        config=config,
        describe=f"list commits of project {project_id} (page {page})",
        sleep=sleep,
    )
    if not isinstance(data, list):
        raise GitLabDecodeError(endpoint=endpoint, message=f"expected a list of commits, got {type(data).__name__}")
    try:
        return [CommitRef.from_api(raw) for raw in data]
    except ValueError as e:
        raise GitLabDecodeError(endpoint=endpoint, message=f"malformed commit entry on page {page}: {e}") from e


def iter_commit_pages(
    api: "GitLabAPIClient",
    project_id: str,
    start_date: date,
    end_date: date,
    *,
    config: PipelineConfig,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[List[CommitRef]]:
    """Yield one list of CommitRef per page, in pagination order, until an empty page.

    Raises:
        FatalListingError: a page exhausted its retries or could not be decoded.
    """
    page = 1
    while True:
        try:
            commits = fetch_commit_page(
                api, project_id, start_date, end_date, page=page, config=config, sleep=sleep
            )
        except GitLabAPIError as e:
            raise FatalListingError(project_id=project_id, page=page, cause=e) from e
        if not commits:
            _logger.debug(f"Project {project_id}: page {page} is empty, listing done")
            return
        _logger.debug(f"Project {project_id}: page {page} -> {len(commits)} commits")
        yield commits
        page += 1
        sleep(config.page_interval_s)


def fetch_commit_diff(
    api: "GitLabAPIClient",
    project_id: str,
    ref: CommitRef,
    *,
    config: PipelineConfig,
    sleep: Callable[[float], None] = time.sleep,
) -> CommitDiffStats:
    """Fetch one commit's `stats` block (with retries). Raises GitLabAPIError on failure."""
    endpoint = f"/projects/{project_path(project_id)}/repository/commits/{ref.id}"
    data = call_with_retries(
        lambda: api.get(endpoint, label=LABEL_DETAIL),
        config=config,
        describe=f"fetch commit {ref.short_id}",
        sleep=sleep,
    )
    try:
        return CommitDiffStats.from_api(data)
    except ValueError as e:
        raise GitLabDecodeError(endpoint=endpoint, message=f"malformed detail for commit {ref.short_id}: {e}") from e
