from __future__ import annotations

from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

ItemT = TypeVar("ItemT")


class Page(BaseModel, Generic[ItemT]):
    """
    Bitbucket's paginated envelope.
    `next` is an absolute URL that already carries the query string.
    """

    values: List[ItemT]
    page: Optional[int] = None
    size: Optional[int] = None
    pagelen: Optional[int] = None
    next: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class BitbucketModel(BaseModel):
    """Base for API entities; links are kept loosely typed."""

    type: Optional[str] = None
    links: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")

    def link_href(self, rel: str) -> Optional[str]:
        link = self.links.get(rel)
        if isinstance(link, dict):
            return link.get("href")
        return None


# --- Accounts & containers ---


class User(BitbucketModel):
    display_name: str = ""
    uuid: Optional[str] = None
    nickname: Optional[str] = None
    account_id: Optional[str] = None


class Workspace(BitbucketModel):
    slug: str
    name: str = ""
    uuid: Optional[str] = None


class Project(BitbucketModel):
    key: str
    name: str = ""
    uuid: Optional[str] = None


class BranchRef(BaseModel):
    name: str
    type: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class Repository(BitbucketModel):
    full_name: str
    name: str = ""
    slug: Optional[str] = None
    uuid: Optional[str] = None
    description: str = ""
    is_private: bool = False
    language: str = ""
    created_on: Optional[str] = None
    updated_on: Optional[str] = None
    size: Optional[int] = None
    mainbranch: Optional[BranchRef] = None
    project: Optional[Project] = None


# --- Source ---


class CommitAuthor(BaseModel):
    raw: str = ""
    user: Optional[User] = None

    model_config = ConfigDict(extra="ignore")


class CommitParent(BaseModel):
    hash: str

    model_config = ConfigDict(extra="ignore")


class Commit(BitbucketModel):
    hash: str
    message: str = ""
    date: Optional[str] = None
    author: CommitAuthor = Field(default_factory=CommitAuthor)
    parents: List[CommitParent] = Field(default_factory=list)


class Branch(BitbucketModel):
    name: str
    target: Commit


class DirectoryEntry(BaseModel):
    path: str
    # "commit_directory" or "commit_file"
    type: str
    size: Optional[int] = None

    model_config = ConfigDict(extra="ignore")


class SearchSegment(BaseModel):
    text: str = ""
    match: bool = False

    model_config = ConfigDict(extra="ignore")


class SearchLine(BaseModel):
    line: int
    segments: List[SearchSegment] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class ContentMatch(BaseModel):
    lines: List[SearchLine] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class SearchFile(BaseModel):
    path: str
    type: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class CodeSearchResult(BaseModel):
    type: Optional[str] = None
    content_match_count: int = 0
    content_matches: List[ContentMatch] = Field(default_factory=list)
    path_matches: List[SearchSegment] = Field(default_factory=list)
    file: SearchFile

    model_config = ConfigDict(extra="ignore")


# --- Pull requests ---


class RenderedContent(BaseModel):
    raw: str = ""
    markup: Optional[str] = None
    html: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class EndpointRepository(BaseModel):
    full_name: str

    model_config = ConfigDict(extra="ignore")


class PullRequestEndpoint(BaseModel):
    branch: BranchRef
    repository: Optional[EndpointRepository] = None
    commit: Optional[CommitParent] = None

    model_config = ConfigDict(extra="ignore")


class Participant(BaseModel):
    user: User
    role: str = "PARTICIPANT"
    approved: bool = False
    state: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class PullRequest(BitbucketModel):
    id: int
    title: str
    description: str = ""
    state: str = ""
    author: User = Field(default_factory=User)
    source: PullRequestEndpoint
    destination: PullRequestEndpoint
    merge_commit: Optional[CommitParent] = None
    close_source_branch: bool = False
    created_on: Optional[str] = None
    updated_on: Optional[str] = None
    comment_count: int = 0
    task_count: int = 0
    reason: str = ""
    participants: List[Participant] = Field(default_factory=list)
    reviewers: List[User] = Field(default_factory=list)


class InlineLocation(BaseModel):
    path: str
    from_: Optional[int] = Field(default=None, alias="from")
    to: Optional[int] = None

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ParentRef(BaseModel):
    id: int

    model_config = ConfigDict(extra="ignore")


class PullRequestComment(BitbucketModel):
    id: int
    content: RenderedContent = Field(default_factory=RenderedContent)
    created_on: Optional[str] = None
    updated_on: Optional[str] = None
    user: User = Field(default_factory=User)
    inline: Optional[InlineLocation] = None
    parent: Optional[ParentRef] = None
    deleted: bool = False


class Approval(BaseModel):
    user: User = Field(default_factory=User)
    date: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class PullRequestUpdate(BaseModel):
    state: str = ""
    title: Optional[str] = None
    date: Optional[str] = None
    author: User = Field(default_factory=User)

    model_config = ConfigDict(extra="ignore")


class PullRequestActivity(BaseModel):
    approval: Optional[Approval] = None
    update: Optional[PullRequestUpdate] = None
    comment: Optional[PullRequestComment] = None

    model_config = ConfigDict(extra="ignore")


class DiffStatPath(BaseModel):
    path: str

    model_config = ConfigDict(extra="ignore")


class DiffStatEntry(BaseModel):
    status: str
    old: Optional[DiffStatPath] = None
    new: Optional[DiffStatPath] = None
    lines_added: int = 0
    lines_removed: int = 0
    type: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


# --- Issues ---


class Issue(BitbucketModel):
    id: int
    title: str
    state: str = ""
    priority: str = ""
    kind: str = ""
    content: RenderedContent = Field(default_factory=RenderedContent)
    reporter: User = Field(default_factory=User)
    assignee: Optional[User] = None
    created_on: Optional[str] = None
    updated_on: Optional[str] = None
    votes: int = 0
    watches: int = 0


class IssueComment(BitbucketModel):
    id: int
    content: RenderedContent = Field(default_factory=RenderedContent)
    created_on: Optional[str] = None
    updated_on: Optional[str] = None
    user: User = Field(default_factory=User)


# --- Pipelines ---


class PipelineSelector(BaseModel):
    type: str
    pattern: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class PipelineTarget(BaseModel):
    type: Optional[str] = None
    ref_type: Optional[str] = None
    ref_name: Optional[str] = None
    selector: Optional[PipelineSelector] = None

    model_config = ConfigDict(extra="ignore")


class NamedState(BaseModel):
    name: str

    model_config = ConfigDict(extra="ignore")


class PipelineState(BaseModel):
    name: str
    result: Optional[NamedState] = None
    stage: Optional[NamedState] = None

    model_config = ConfigDict(extra="ignore")


class Pipeline(BitbucketModel):
    uuid: str
    build_number: int
    state: PipelineState
    target: PipelineTarget = Field(default_factory=PipelineTarget)
    creator: User = Field(default_factory=User)
    created_on: Optional[str] = None
    completed_on: Optional[str] = None
    duration_in_seconds: Optional[int] = None


__all__ = [
    "Page",
    "BitbucketModel",
    "User",
    "Workspace",
    "Project",
    "BranchRef",
    "Repository",
    "CommitAuthor",
    "Commit",
    "Branch",
    "DirectoryEntry",
    "CodeSearchResult",
    "RenderedContent",
    "PullRequestEndpoint",
    "Participant",
    "PullRequest",
    "InlineLocation",
    "PullRequestComment",
    "PullRequestActivity",
    "DiffStatEntry",
    "Issue",
    "IssueComment",
    "PipelineTarget",
    "PipelineState",
    "Pipeline",
]
