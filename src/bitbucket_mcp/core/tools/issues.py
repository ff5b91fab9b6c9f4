from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from bitbucket_mcp.core.client import BitbucketClient
from bitbucket_mcp.core.config import Config
from bitbucket_mcp.core.formatting import (
    format_issue,
    format_issue_comment,
    format_issue_list,
)
from bitbucket_mcp.core.models import Issue, IssueComment, Page
from bitbucket_mcp.core.safety import (
    assert_not_readonly,
    assert_repo_allowed,
    resolve_workspace,
)
from bitbucket_mcp.core.tools._common import clamp_pagelen, repo_path

IssueKind = Literal["bug", "enhancement", "proposal", "task"]
IssuePriority = Literal["trivial", "minor", "major", "critical", "blocker"]


async def list_issues(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    workspace: Optional[str] = None,
    query: Optional[str] = None,
    page: Optional[int] = None,
    pagelen: Optional[int] = None,
) -> str:
    """
    List issues in a repository's issue tracker.

    Args:
        query: Bitbucket query language filter, e.g. 'state = "open"'.
    """
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    result = await client.get_model(
        Page[Issue],
        repo_path(ws, repo_slug, "issues"),
        params={"q": query, "page": page, "pagelen": clamp_pagelen(pagelen)},
        tool="list_issues",
    )
    return format_issue_list(result.values)


async def get_issue(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    issue_id: int,
    workspace: Optional[str] = None,
) -> str:
    """Get details of a specific issue."""
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    issue = await client.get_model(
        Issue, repo_path(ws, repo_slug, "issues", issue_id), tool="get_issue"
    )
    return format_issue(issue)


async def create_issue(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    title: str,
    workspace: Optional[str] = None,
    content: Optional[str] = None,
    kind: Optional[IssueKind] = None,
    priority: Optional[IssuePriority] = None,
) -> str:
    """
    Create a new issue.

    Args:
        content: Issue body in raw markdown.
    """
    assert_not_readonly(config)
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)

    body: Dict[str, Any] = {"title": title}
    if content:
        body["content"] = {"raw": content}
    if kind:
        body["kind"] = kind
    if priority:
        body["priority"] = priority

    issue = await client.request_model(
        Issue,
        "POST",
        repo_path(ws, repo_slug, "issues"),
        json=body,
        tool="create_issue",
    )
    return format_issue(issue)


async def comment_issue(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    issue_id: int,
    content: str,
    workspace: Optional[str] = None,
) -> str:
    """Add a comment to an issue."""
    assert_not_readonly(config)
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    comment = await client.request_model(
        IssueComment,
        "POST",
        repo_path(ws, repo_slug, "issues", issue_id, "comments"),
        json={"content": {"raw": content}},
        tool="comment_issue",
    )
    return format_issue_comment(comment)
