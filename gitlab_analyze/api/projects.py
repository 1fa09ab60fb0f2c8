# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""GitLab project listing API (used by `gitlab-analyze list`).

Resources:
  GET /api/v4/projects?membership=true&per_page=100&page=N
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

from ..config import PipelineConfig
from ..exceptions import GitLabDecodeError
from ..retry import call_with_retries

if TYPE_CHECKING:  # pragma: no cover
    from .. import GitLabAPIClient

LABEL = "projects_list"
API_CALL_FORMAT = "GET /api/v4/projects?membership=true&per_page=100&page=N"


@dataclass(frozen=True)
class RemoteProject:
    id: int
    name: str
    path_with_namespace: str
    description: str = ""

    @classmethod
    def from_api(cls, raw: Any) -> "RemoteProject":
        if not isinstance(raw, dict) or not isinstance(raw.get("id"), int):
            raise ValueError(f"project entry without integer id: {raw!r}"[:200])
        return cls(
            id=int(raw["id"]),
            name=str(raw.get("name") or ""),
            path_with_namespace=str(raw.get("path_with_namespace") or ""),
            description=str(raw.get("description") or ""),
        )


def list_projects(
    api: "GitLabAPIClient",
    *,
    config: PipelineConfig,
    params: Optional[Dict[str, Any]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> List[RemoteProject]:
    """Fetch every page of `/projects` (default: projects the token is a member of)."""
    query: Dict[str, Any] = {"membership": "true", "per_page": config.page_size}
    query.update(params or {})
    page = int(query.pop("page", 1) or 1)

    out: List[RemoteProject] = []
    while True:
        page_params = dict(query, page=page)
        data = call_with_retries(
            lambda: api.get("/projects", params=page_params, label=LABEL),
            config=config,
            describe=f"list projects (page {page})",
            sleep=sleep,
        )
        if not isinstance(data, list):
            raise GitLabDecodeError(endpoint="/projects", message=f"expected a list of projects, got {type(data).__name__}")
        if not data:
            return out
        try:
            out.extend(RemoteProject.from_api(raw) for raw in data)
        except ValueError as e:
            raise GitLabDecodeError(endpoint="/projects", message=f"malformed project on page {page}: {e}") from e
        page += 1
        sleep(config.page_interval_s)
