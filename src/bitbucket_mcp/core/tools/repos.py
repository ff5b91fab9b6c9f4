from __future__ import annotations

from typing import Dict, Optional

from bitbucket_mcp.core.client import BitbucketClient
from bitbucket_mcp.core.config import Config
from bitbucket_mcp.core.formatting import (
    format_branch,
    format_branch_list,
    format_code_search_results,
    format_commit_list,
    format_directory_listing,
    format_repository,
    format_repository_list,
)
from bitbucket_mcp.core.models import (
    Branch,
    CodeSearchResult,
    Commit,
    DirectoryEntry,
    Page,
    Repository,
)
from bitbucket_mcp.core.safety import (
    assert_confirmed,
    assert_not_readonly,
    assert_repo_allowed,
    assert_workspace_allowed,
    resolve_workspace,
)
from bitbucket_mcp.core.tools._common import clamp_pagelen, encode_segment, repo_path


async def list_repositories(
    client: BitbucketClient,
    config: Config,
    workspace: Optional[str] = None,
    query: Optional[str] = None,
    page: Optional[int] = None,
    pagelen: Optional[int] = None,
) -> str:
    """
    List repositories in a Bitbucket workspace.

    Args:
        workspace: Workspace slug (uses the default workspace if not set).
        query: Bitbucket query language filter, e.g. 'name ~ "api"'.
        page: Page number for pagination.
        pagelen: Results per page (max 100).
    """
    ws = resolve_workspace(config, workspace)
    assert_workspace_allowed(config, ws)
    result = await client.get_model(
        Page[Repository],
        f"/repositories/{ws}",
        params={"q": query, "page": page, "pagelen": clamp_pagelen(pagelen)},
        tool="list_repositories",
    )
    return format_repository_list(result.values)


async def get_repository(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    workspace: Optional[str] = None,
) -> str:
    """Get details of a specific Bitbucket repository."""
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    repo = await client.get_model(
        Repository, repo_path(ws, repo_slug), tool="get_repository"
    )
    return format_repository(repo)


async def list_branches(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    workspace: Optional[str] = None,
    query: Optional[str] = None,
    page: Optional[int] = None,
    pagelen: Optional[int] = None,
) -> str:
    """List branches in a Bitbucket repository, optionally filtered by a query."""
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    result = await client.get_model(
        Page[Branch],
        repo_path(ws, repo_slug, "refs", "branches"),
        params={"q": query, "page": page, "pagelen": clamp_pagelen(pagelen)},
        tool="list_branches",
    )
    return format_branch_list(result.values)


async def list_commits(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    workspace: Optional[str] = None,
    revision: Optional[str] = None,
    page: Optional[int] = None,
    pagelen: Optional[int] = None,
) -> str:
    """
    List commits in a Bitbucket repository.

    Args:
        revision: Branch name, tag or commit hash to list commits from.
    """
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    path = (
        repo_path(ws, repo_slug, "commits", revision)
        if revision
        else repo_path(ws, repo_slug, "commits")
    )
    result = await client.get_model(
        Page[Commit],
        path,
        params={"page": page, "pagelen": clamp_pagelen(pagelen)},
        tool="list_commits",
    )
    return format_commit_list(result.values)


async def get_file(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    commit: str,
    path: str,
    workspace: Optional[str] = None,
) -> str:
    """
    Get the raw content of a file from a Bitbucket repository.

    Args:
        commit: Branch name, tag or commit hash to read from.
        path: File path within the repository.
    """
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    return await client.get_raw(
        repo_path(ws, repo_slug, "src", commit, path.lstrip("/")), tool="get_file"
    )


async def create_commit_files(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    branch: str,
    message: str,
    files: Dict[str, str],
    workspace: Optional[str] = None,
    author: Optional[str] = None,
) -> str:
    """
    Create or update files by creating a new commit on a branch.

    Args:
        files: Map of file paths to file contents, e.g. {"src/app.py": "print(1)"}.
        author: 'Name <email>' (defaults to the authenticated user).
    """
    assert_not_readonly(config)
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    if not files:
        raise ValueError("files must contain at least one path")

    form: Dict[str, str] = {"message": message, "branch": branch}
    if author:
        form["author"] = author
    # Bitbucket uses the form field name as the file path
    uploads = {
        file_path: (file_path, content.encode("utf-8"))
        for file_path, content in files.items()
    }
    await client.post_form(
        repo_path(ws, repo_slug, "src"),
        data=form,
        files=uploads,
        tool="create_commit_files",
    )
    return f"Successfully committed {len(files)} file(s) to {branch}"


async def create_branch(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    name: str,
    target_hash: str,
    workspace: Optional[str] = None,
) -> str:
    """Create a new branch pointing at the given commit hash."""
    assert_not_readonly(config)
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    branch = await client.request_model(
        Branch,
        "POST",
        repo_path(ws, repo_slug, "refs", "branches"),
        json={"name": name, "target": {"hash": target_hash}},
        tool="create_branch",
    )
    return format_branch(branch)


async def delete_branch(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    name: str,
    confirm: Optional[bool] = None,
    workspace: Optional[str] = None,
) -> str:
    """
    Delete a branch (destructive action).

    Args:
        confirm: Must be true to confirm this destructive action.
    """
    assert_not_readonly(config)
    assert_confirmed(confirm, "delete branch")
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    await client.delete(
        repo_path(ws, repo_slug, "refs", "branches", encode_segment(name)),
        tool="delete_branch",
    )
    return f'Branch "{name}" deleted successfully.'


async def list_directory(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    workspace: Optional[str] = None,
    path: Optional[str] = None,
    revision: Optional[str] = None,
    page: Optional[int] = None,
    pagelen: Optional[int] = None,
) -> str:
    """
    List the contents of a directory in a Bitbucket repository.

    Args:
        path: Directory path (defaults to the repository root).
        revision: Branch name, tag or commit hash (defaults to HEAD).
    """
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    target = repo_path(ws, repo_slug, "src", revision or "HEAD")
    if path and path.strip("/"):
        target += "/" + path.strip("/")
    result = await client.get_model(
        Page[DirectoryEntry],
        target,
        params={"page": page, "pagelen": clamp_pagelen(pagelen)},
        tool="list_directory",
    )
    return format_directory_listing(result.values)


async def search_code(
    client: BitbucketClient,
    config: Config,
    query: str,
    workspace: Optional[str] = None,
    repo_slug: Optional[str] = None,
    page: Optional[int] = None,
    pagelen: Optional[int] = None,
) -> str:
    """
    Search for code in a workspace, or in one repository when repo_slug is set.

    Args:
        query: Search query string.
    """
    ws = resolve_workspace(config, workspace)
    if repo_slug:
        assert_repo_allowed(config, ws, repo_slug)
        path = repo_path(ws, repo_slug, "search", "code")
    else:
        assert_workspace_allowed(config, ws)
        path = f"/workspaces/{ws}/search/code"
    result = await client.get_model(
        Page[CodeSearchResult],
        path,
        params={
            "search_query": query,
            "page": page,
            "pagelen": clamp_pagelen(pagelen),
        },
        tool="search_code",
    )
    return format_code_search_results(result.values)
