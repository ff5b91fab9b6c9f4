from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from bitbucket_mcp.core.client import BitbucketClient
from bitbucket_mcp.core.config import Config
from bitbucket_mcp.core.formatting import format_pipeline, format_pipeline_list
from bitbucket_mcp.core.models import Page, Pipeline
from bitbucket_mcp.core.safety import (
    assert_not_readonly,
    assert_repo_allowed,
    resolve_workspace,
)
from bitbucket_mcp.core.tools._common import clamp_pagelen, encode_segment, repo_path


class PipelineVariable(BaseModel):
    key: str
    value: str
    secured: bool = False

    model_config = ConfigDict(extra="forbid")


async def list_pipelines(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    workspace: Optional[str] = None,
    page: Optional[int] = None,
    pagelen: Optional[int] = None,
) -> str:
    """List pipeline runs in a repository, newest first."""
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    result = await client.get_model(
        Page[Pipeline],
        repo_path(ws, repo_slug, "pipelines") + "/",
        params={
            "page": page,
            "pagelen": clamp_pagelen(pagelen),
            "sort": "-created_on",
        },
        tool="list_pipelines",
    )
    return format_pipeline_list(result.values)


async def get_pipeline(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    pipeline_uuid: str,
    workspace: Optional[str] = None,
) -> str:
    """
    Get details of a pipeline run.

    Args:
        pipeline_uuid: Pipeline UUID, with or without braces.
    """
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)
    pipeline = await client.get_model(
        Pipeline,
        repo_path(ws, repo_slug, "pipelines", encode_segment(pipeline_uuid)),
        tool="get_pipeline",
    )
    return format_pipeline(pipeline)


async def trigger_pipeline(
    client: BitbucketClient,
    config: Config,
    repo_slug: str,
    branch: str,
    workspace: Optional[str] = None,
    pattern: Optional[str] = None,
    variables: Optional[List[PipelineVariable]] = None,
) -> str:
    """
    Trigger a new pipeline run on a branch.

    Args:
        pattern: Custom pipeline name from bitbucket-pipelines.yml.
        variables: Pipeline variables as {key, value, secured}.
    """
    assert_not_readonly(config)
    ws = resolve_workspace(config, workspace)
    assert_repo_allowed(config, ws, repo_slug)

    target: Dict[str, Any] = {
        "type": "pipeline_ref_target",
        "ref_type": "branch",
        "ref_name": branch,
    }
    if pattern:
        target["selector"] = {"type": "custom", "pattern": pattern}

    body: Dict[str, Any] = {"target": target}
    if variables:
        body["variables"] = [
            PipelineVariable.model_validate(v).model_dump() for v in variables
        ]

    pipeline = await client.request_model(
        Pipeline,
        "POST",
        repo_path(ws, repo_slug, "pipelines") + "/",
        json=body,
        tool="trigger_pipeline",
    )
    return format_pipeline(pipeline)
