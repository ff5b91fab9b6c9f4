from __future__ import annotations

from typing import Optional

from bitbucket_mcp.core.client import BitbucketClient
from bitbucket_mcp.core.formatting import format_user, format_workspace_list
from bitbucket_mcp.core.models import User, Workspace


async def whoami(client: BitbucketClient) -> str:
    """Get the currently authenticated Bitbucket user."""
    user = await client.get_model(User, "/user", tool="whoami")
    return format_user(user)


async def list_workspaces(
    client: BitbucketClient, role: Optional[str] = None
) -> str:
    """
    List Bitbucket workspaces accessible to the authenticated user.

    Args:
        role: Filter by role (e.g. 'owner', 'collaborator', 'member').
    """
    workspaces = await client.paginate_all(
        "/workspaces",
        {"role": role} if role else None,
        model=Workspace,
        tool="list_workspaces",
    )
    return format_workspace_list(workspaces)
