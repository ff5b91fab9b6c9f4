from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from bitbucket_mcp.core.client import BitbucketClient
from bitbucket_mcp.core.config import Config
from bitbucket_mcp.core.formatting import (
    format_diffstat,
    format_pr_activity,
    format_pr_comment,
    format_pull_request,
    format_pull_request_list,
)
from bitbucket_mcp.core.models import (
    DiffStatEntry,
    Page,
    PullRequest,
    PullRequestActivity,
    PullRequestComment,
)
from bitbucket_mcp.core.safety import (
    assert_confirmed,
    assert_not_readonly,
    assert_repo_allowed,
    resolve_workspace,
)
from bitbucket_mcp.core.tools._common import clamp_pagelen, repo_path

PullRequestState = Literal["OPEN", "MERGED", "DECLINED", "SUPERSEDED"]
MergeStrategy = Literal["merge_commit", "squash", "fast_forward"]

DEFAULT_DESTINATION_BRANCH = "main"
DIFF_NOTE = (
    "Note: Diff output may be truncated for large changes. Use "
    "bb_get_pull_request_diffstat for a summary of all changed files.\n\n"
)


def _pr_path(ws: str, repo_slug: str, pr_id: int, *parts: str) -> str:
    return repo_path(ws, repo_slug, "pullrequests", pr_id, *parts)


def _reviewer_refs(reviewers: List[str]) -> List[Dict[str, str]]:
    return [{"uuid": uuid} for uuid in reviewers]


async def list_pull_requests(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    workspace: Optional[str] = None,
    state: Optional[PullRequestState] = None,
    page: Optional[int] = None,
    pagelen: Optional[int] = None,
) -> str:
    """List pull requests in a repository, optionally filtered by state."""
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    result = await client.get_model(
        Page[PullRequest],
        repo_path(ws, repo_slug, "pullrequests"),
        params={"state": state, "page": page, "pagelen": clamp_pagelen(pagelen)},
        tool="list_pull_requests",
    )
    return format_pull_request_list(result.values)


async def get_pull_request(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    pr_id: int,
    workspace: Optional[str] = None,
) -> str:
    """Get details of a pull request, including participants and reviewers."""
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    pr = await client.get_model(
        PullRequest, _pr_path(ws, repo_slug, pr_id), tool="get_pull_request"
    )
    return format_pull_request(pr)


async def create_pull_request(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    title: str,
    source_branch: str,
    workspace: Optional[str] = None,
    destination_branch: Optional[str] = None,
    description: Optional[str] = None,
    close_source_branch: Optional[bool] = None,
    reviewers: Optional[List[str]] = None,
) -> str:
    """
    Create a new pull request.

    Args:
        destination_branch: Target branch (defaults to main).
        reviewers: Reviewer account UUIDs.
    """
    assert_not_readonly(config)
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)

    body: Dict[str, Any] = {
        "title": title,
        "source": {"branch": {"name": source_branch}},
        "destination": {
            "branch": {"name": destination_branch or DEFAULT_DESTINATION_BRANCH}
        },
    }
    if description is not None:
        body["description"] = description
    if close_source_branch is not None:
        body["close_source_branch"] = close_source_branch
    if reviewers:
        body["reviewers"] = _reviewer_refs(reviewers)

    pr = await client.request_model(
        PullRequest,
        "POST",
        repo_path(ws, repo_slug, "pullrequests"),
        json=body,
        tool="create_pull_request",
    )
    return format_pull_request(pr)


async def get_pull_request_diff(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    pr_id: int,
    workspace: Optional[str] = None,
) -> str:
    """Get the unified diff of a pull request."""
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    diff = await client.get_raw(
        _pr_path(ws, repo_slug, pr_id, "diff"), tool="get_pull_request_diff"
    )
    return DIFF_NOTE + diff


async def get_pull_request_diffstat(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    pr_id: int,
    workspace: Optional[str] = None,
) -> str:
    """Summarize the files changed by a pull request, across all pages."""
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    entries = await client.paginate_all(
        _pr_path(ws, repo_slug, pr_id, "diffstat"),
        model=DiffStatEntry,
        tool="get_pull_request_diffstat",
    )
    return format_diffstat(entries)


async def list_pull_request_activity(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    pr_id: int,
    workspace: Optional[str] = None,
) -> str:
    """List comments, approvals and updates on a pull request."""
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    activities = await client.paginate_all(
        _pr_path(ws, repo_slug, pr_id, "activity"),
        model=PullRequestActivity,
        tool="list_pull_request_activity",
    )
    return format_pr_activity(activities)


async def add_pull_request_comment(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    pr_id: int,
    content: str,
    workspace: Optional[str] = None,
    inline_path: Optional[str] = None,
    inline_line: Optional[int] = None,
    parent_id: Optional[int] = None,
) -> str:
    """
    Add a comment to a pull request.

    Args:
        inline_path: File path for an inline comment.
        inline_line: Line number for an inline comment (the 'to' line).
        parent_id: Parent comment ID to create a threaded reply.
    """
    assert_not_readonly(config)
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)

    body: Dict[str, Any] = {"content": {"raw": content}}
    if inline_path:
        inline: Dict[str, Any] = {"path": inline_path}
        if inline_line is not None:
            inline["to"] = inline_line
        body["inline"] = inline
    if parent_id:
        body["parent"] = {"id": parent_id}

    comment = await client.request_model(
        PullRequestComment,
        "POST",
        _pr_path(ws, repo_slug, pr_id, "comments"),
        json=body,
        tool="add_pull_request_comment",
    )
    return format_pr_comment(comment)


async def approve_pull_request(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    pr_id: int,
    workspace: Optional[str] = None,
) -> str:
    """Approve a pull request as the authenticated user."""
    assert_not_readonly(config)
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    await client.post(
        _pr_path(ws, repo_slug, pr_id, "approve"), tool="approve_pull_request"
    )
    return f"Pull request #{pr_id} approved."


async def request_changes_pull_request(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    pr_id: int,
    workspace: Optional[str] = None,
) -> str:
    """Request changes on a pull request."""
    assert_not_readonly(config)
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    await client.post(
        _pr_path(ws, repo_slug, pr_id, "request-changes"),
        tool="request_changes_pull_request",
    )
    return f"Changes requested on pull request #{pr_id}."


async def merge_pull_request(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    pr_id: int,
    confirm: Optional[bool] = None,
    workspace: Optional[str] = None,
    merge_strategy: Optional[MergeStrategy] = None,
    close_source_branch: Optional[bool] = None,
) -> str:
    """
    Merge a pull request (destructive action).

    Args:
        confirm: Must be true to confirm this destructive action.
    """
    assert_not_readonly(config)
    assert_confirmed(confirm, "merge pull request")
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)

    body: Dict[str, Any] = {"type": "pullrequest"}
    if merge_strategy is not None:
        body["merge_strategy"] = merge_strategy
    if close_source_branch is not None:
        body["close_source_branch"] = close_source_branch

    pr = await client.request_model(
        PullRequest,
        "POST",
        _pr_path(ws, repo_slug, pr_id, "merge"),
        json=body,
        tool="merge_pull_request",
    )
    return format_pull_request(pr)


async def update_pull_request(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    pr_id: int,
    workspace: Optional[str] = None,
    title: Optional[str] = None,
    description: Optional[str] = None,
    reviewers: Optional[List[str]] = None,
) -> str:
    """
    Update a pull request's title, description or reviewers.

    Args:
        reviewers: Reviewer UUIDs; replaces the existing reviewers.
    """
    assert_not_readonly(config)
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)

    body: Dict[str, Any] = {}
    if title is not None:
        body["title"] = title
    if description is not None:
        body["description"] = description
    if reviewers is not None:
        body["reviewers"] = _reviewer_refs(reviewers)
    if not body:
        raise ValueError("Provide at least one of title, description or reviewers.")

    pr = await client.request_model(
        PullRequest,
        "PUT",
        _pr_path(ws, repo_slug, pr_id),
        json=body,
        tool="update_pull_request",
    )
    return format_pull_request(pr)


async def decline_pull_request(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    pr_id: int,
    confirm: Optional[bool] = None,
    workspace: Optional[str] = None,
) -> str:
    """
    Decline a pull request (destructive action).

    Args:
        confirm: Must be true to confirm this destructive action.
    """
    assert_not_readonly(config)
    assert_confirmed(confirm, "decline pull request")
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    pr = await client.request_model(
        PullRequest,
        "POST",
        _pr_path(ws, repo_slug, pr_id, "decline"),
        tool="decline_pull_request",
    )
    return format_pull_request(pr)
