# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""GitLab per-author code-change statistics.

Layout:
- `gitlab_analyze/` defines the REST client + shared types/config
- `gitlab_analyze/api/*.py` contains per-resource fetch logic (commits, projects)
- `pipeline.py` runs lister -> stats workers -> dedup reducer for one project
- `merge.py` combines per-project results; `analyze.py` drives a batch
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from .exceptions import (
    GitLabAPIError,
    GitLabAuthError,
    GitLabDecodeError,
    GitLabForbiddenError,
    GitLabNotFoundError,
    GitLabStatusError,
    GitLabTransportError,
)

_logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://gitlab.com"
_ERROR_BODY_MAX_CHARS = 300


class GitLabAPIClient:
    """GitLab REST API client (thin; retries live in `retry.py`, resources in `api/`).

    One instance is shared by all stats workers, so the REST counters are lock-guarded.
    """

    @staticmethod
    def get_gitlab_token_from_file() -> Optional[str]:
        """Get GitLab token from `~/.config/gitlab-token` (best-effort)."""
        try:
            token_file = Path.home() / ".config" / "gitlab-token"
            if token_file.exists():
                return token_file.read_text().strip() or None
        except OSError:
            pass
        return None

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        *,
        api_version: str = "v4",
        verify_ssl: bool = True,
        timeout: float = 30,
    ):
        # Token priority: 1) provided token, 2) environment variable, 3) config file
        self.token = token or os.environ.get("GITLAB_TOKEN") or self.get_gitlab_token_from_file()
        self.base_url = str(base_url or DEFAULT_BASE_URL).rstrip("/")
        self.api_url = f"{self.base_url}/api/{str(api_version or 'v4').strip('/')}"
        self.verify_ssl = bool(verify_ssl)
        self.timeout = float(timeout)
        self.headers: Dict[str, str] = {}
        if self.token:
            self.headers["PRIVATE-TOKEN"] = self.token

        self._stats_mu = threading.Lock()
        self._rest_calls_total: int = 0
        self._rest_calls_by_label: Dict[str, int] = {}
        self._rest_success_total: int = 0
        self._rest_errors_total: int = 0
        self._rest_time_total_s: float = 0.0
        self._rest_time_by_label_s: Dict[str, float] = {}
        self._rest_errors_by_status: Dict[int, int] = {}

    def has_token(self) -> bool:
        return self.token is not None

    def _rest_record(self, *, label: str, status_code: Optional[int], dt_s: float) -> None:
        """Record one REST call (status_code None == transport failure)."""
        lbl = str(label or "").strip() or "unknown"
        dt = max(0.0, float(dt_s or 0.0))
        with self._stats_mu:
            self._rest_calls_total += 1
            self._rest_calls_by_label[lbl] = self._rest_calls_by_label.get(lbl, 0) + 1
            self._rest_time_total_s += dt
            self._rest_time_by_label_s[lbl] = self._rest_time_by_label_s.get(lbl, 0.0) + dt
            if status_code is None:
                self._rest_errors_total += 1
                return
            if 200 <= status_code < 300:
                self._rest_success_total += 1
            else:
                self._rest_errors_total += 1
                self._rest_errors_by_status[status_code] = self._rest_errors_by_status.get(status_code, 0) + 1

    def get(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        *,
        label: Optional[str] = None,
    ) -> Any:
        """GET `{api_url}{endpoint}` and return decoded JSON (dict/list) or raise.

        Raises:
            GitLabTransportError: connection/timeout/TLS failure (no HTTP status)
            GitLabStatusError: non-2xx status (401/403/404 have dedicated subclasses)
            GitLabDecodeError: 2xx with a body that is not JSON
        """
        ep = str(endpoint or "")
        url = f"{self.api_url}{ep}" if ep.startswith("/") else f"{self.api_url}/{ep}"
        lbl = str(label or "").strip() or "unknown"
        t0 = time.monotonic()
        status_code: Optional[int] = None

        try:
            try:
                response = requests.get(
                    url,
                    headers=self.headers,
                    params=params,
                    timeout=self.timeout if timeout is None else timeout,
                    verify=self.verify_ssl,
                )
            except requests.exceptions.RequestException as e:
                raise GitLabTransportError(endpoint=ep, message=f"GitLab API request failed for {ep}: {e}") from e

            status_code = int(response.status_code)
            if not 200 <= status_code < 300:
                body = (response.text or "")[:_ERROR_BODY_MAX_CHARS]
                if status_code == 401:
                    raise GitLabAuthError(status_code=401, endpoint=ep, body=body,
                                          message="GitLab API returned 401 Unauthorized. Check your token.")
                if status_code == 403:
                    raise GitLabForbiddenError(status_code=403, endpoint=ep, body=body,
                                               message="GitLab API returned 403 Forbidden. Token may lack permissions.")
                if status_code == 404:
                    raise GitLabNotFoundError(status_code=404, endpoint=ep, body=body,
                                              message=f"GitLab API returned 404 Not Found for {ep}")
                raise GitLabStatusError(status_code=status_code, endpoint=ep, body=body,
                                        message=f"GitLab API request failed: {body} (status {status_code})")

            try:
                return response.json()
            except (ValueError, json.JSONDecodeError) as e:
                raise GitLabDecodeError(status_code=status_code, endpoint=ep,
                                        message=f"GitLab API returned invalid JSON for {ep}: {e}") from e
        finally:
            self._rest_record(label=lbl, status_code=status_code, dt_s=time.monotonic() - t0)

    def get_rest_call_stats(self) -> Dict[str, Any]:
        """Snapshot of REST call stats for this client."""
        with self._stats_mu:
            return {
                "total": self._rest_calls_total,
                "success_total": self._rest_success_total,
                "error_total": self._rest_errors_total,
                "time_total_s": self._rest_time_total_s,
                "by_label": dict(sorted(self._rest_calls_by_label.items(), key=lambda kv: (-kv[1], kv[0]))),
                "time_by_label_s": dict(sorted(self._rest_time_by_label_s.items(), key=lambda kv: (-kv[1], kv[0]))),
                "errors_by_status": dict(sorted(self._rest_errors_by_status.items(), key=lambda kv: (-kv[1], kv[0]))),
            }


from .analyze import AnalysisResult, analyze_projects  # noqa: E402
from .config import AppConfig, PipelineConfig, load_config  # noqa: E402
from .merge import merge_project_stats  # noqa: E402
from .pipeline import ProjectStatsPipeline, get_project_commit_stats  # noqa: E402

__all__ = [
    "AnalysisResult",
    "AppConfig",
    "GitLabAPIClient",
    "GitLabAPIError",
    "PipelineConfig",
    "ProjectStatsPipeline",
    "analyze_projects",
    "get_project_commit_stats",
    "load_config",
    "merge_project_stats",
]
