# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""GitLab API and pipeline error types.

Kept in their own module so the client, the `api/` helpers and the pipeline can
catch specific classes (e.g. a 404 vs. a dropped connection) without import cycles.
"""

from __future__ import annotations


class GitLabAPIError(Exception):
    def __init__(self, *, status_code: int, endpoint: str, message: str):
        super().__init__(message)
        self.status_code = int(status_code)
        self.endpoint = str(endpoint or "")


class GitLabTransportError(GitLabAPIError):
    """Network-level failure (connection refused, timeout, TLS); no HTTP status."""

    def __init__(self, *, endpoint: str, message: str):
        super().__init__(status_code=0, endpoint=endpoint, message=message)


class GitLabStatusError(GitLabAPIError):
    """Non-success HTTP status; `body` holds the (truncated) response payload."""

    def __init__(self, *, status_code: int, endpoint: str, message: str, body: str = ""):
        super().__init__(status_code=status_code, endpoint=endpoint, message=message)
        self.body = str(body or "")


class GitLabAuthError(GitLabStatusError):
    pass


class GitLabForbiddenError(GitLabStatusError):
    pass


class GitLabNotFoundError(GitLabStatusError):
    pass


class GitLabDecodeError(GitLabAPIError):
    """The response body was not the JSON shape we expected."""

    def __init__(self, *, endpoint: str, message: str, status_code: int = 200):
        super().__init__(status_code=status_code, endpoint=endpoint, message=message)


# Only these are worth another attempt; a body we can't decode will not improve.
RETRYABLE_ERRORS = (GitLabTransportError, GitLabStatusError)


class FatalListingError(Exception):
    """A commit-listing page could not be fetched or decoded; the project run is aborted."""

    def __init__(self, *, project_id: str, page: int, cause: BaseException):
        super().__init__(f"failed to list commits for project {project_id} (page {page}): {cause}")
        self.project_id = str(project_id)
        self.page = int(page)
        self.cause = cause


class PerCommitFetchError(Exception):
    """A single commit's detail could not be fetched or decoded; the commit is dropped."""

    def __init__(self, *, commit_id: str, cause: BaseException):
        super().__init__(f"failed to fetch commit {commit_id[:8]}: {cause}")
        self.commit_id = str(commit_id)
        self.cause = cause


class NoProjectsSucceededError(Exception):
    """Every requested project run failed; there is nothing to merge or export."""

    def __init__(self, failed: dict):
        ids = ", ".join(sorted(failed))
        super().__init__(f"no project could be analyzed (failed: {ids})")
        self.failed = dict(failed)


class ProjectFileError(Exception):
    pass
