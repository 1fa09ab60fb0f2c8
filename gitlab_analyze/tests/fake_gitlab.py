"""In-memory GitLab fake used by the tests (answers the commit endpoints, no network)."""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional, Sequence, Tuple

from gitlab_analyze.exceptions import GitLabNotFoundError, GitLabStatusError


def make_commit(
    sha: str,
    author: str = "alice",
    message: Optional[str] = None,
    parents: Sequence[str] = (),
    additions: int = 1,
    deletions: int = 0,
    total: Optional[int] = None,
) -> Dict[str, Any]:
    return {
        "id": sha,
        "author_name": author,
        "message": message if message is not None else f"commit {sha}",
        "parent_ids": list(parents),
        "stats": {
            "additions": additions,
            "deletions": deletions,
            "total": additions + deletions if total is None else total,
        },
    }


class FakeGitLab:
    """Answers the two commit endpoints from canned pages.

    projects: project_id -> list of pages (each a list of commit dicts from `make_commit`)
    fail:     (project_id, "list", page) or (project_id, "detail", sha) -> number of 503s to
              return before succeeding (use a large number for "always")
    """

    def __init__(
        self,
        projects: Dict[str, List[List[Dict[str, Any]]]],
        *,
        fail: Optional[Dict[Tuple[str, str, Any], int]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.projects = projects
        self.fail = dict(fail or {})
        self.details: Dict[str, Any] = {}
        for pages in projects.values():
            for page in pages:
                for c in (page if isinstance(page, list) else []):
                    self.details[c["id"]] = c
        self.details.update(details or {})
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self._mu = threading.Lock()

    def _maybe_fail(self, key: Tuple[str, str, Any], endpoint: str) -> None:
        with self._mu:
            left = self.fail.get(key, 0)
            if left <= 0:
                return
            self.fail[key] = left - 1
        raise GitLabStatusError(status_code=503, endpoint=endpoint, message="503 Service Unavailable")

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None, timeout: Any = None, *, label: Any = None) -> Any:
        with self._mu:
            self.calls.append((endpoint, dict(params or {})))
        parts = endpoint.strip("/").split("/")
        project_id = parts[1]
        if endpoint.endswith("/repository/commits"):
            page = int((params or {})["page"])
            self._maybe_fail((project_id, "list", page), endpoint)
            pages = self.projects.get(project_id)
            if pages is None:
                raise GitLabNotFoundError(status_code=404, endpoint=endpoint, message="404 Project Not Found")
            return pages[page - 1] if page <= len(pages) else []
        sha = parts[-1]
        self._maybe_fail((project_id, "detail", sha), endpoint)
        if sha not in self.details:
            raise GitLabNotFoundError(status_code=404, endpoint=endpoint, message="404 Commit Not Found")
        return self.details[sha]

    def calls_to(self, suffix: str) -> List[Tuple[str, Dict[str, Any]]]:
        return [c for c in self.calls if c[0].endswith(suffix)]
