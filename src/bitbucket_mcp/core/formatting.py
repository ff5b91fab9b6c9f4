"""Plain-text renderings of Bitbucket entities for tool output."""

from __future__ import annotations

from typing import List, Optional, Sequence

from .models import (
    Branch,
    CodeSearchResult,
    Commit,
    DiffStatEntry,
    DirectoryEntry,
    Issue,
    IssueComment,
    Participant,
    Pipeline,
    PullRequest,
    PullRequestActivity,
    PullRequestComment,
    Repository,
    User,
    Workspace,
)

DESCRIPTION_PREVIEW_CHARS = 500
SHORT_HASH_CHARS = 12


def _lines(parts: Sequence[Optional[str]]) -> str:
    return "\n".join(p for p in parts if p)


def _first_line(text: str) -> str:
    return text.split("\n", 1)[0]


def format_user(user: User) -> str:
    return f"{user.display_name} (@{user.nickname or 'unknown'})"


def format_workspace(ws: Workspace) -> str:
    return f"{ws.name} [{ws.slug}]"


def format_workspace_list(workspaces: List[Workspace]) -> str:
    if not workspaces:
        return "No workspaces found."
    return "\n".join(f"- {format_workspace(ws)}" for ws in workspaces)


def format_repository(repo: Repository) -> str:
    visibility = " (private)" if repo.is_private else " (public)"
    html_url = repo.link_href("html")
    return _lines(
        [
            f"{repo.full_name}{visibility}",
            f"  Description: {repo.description}" if repo.description else None,
            f"  Language: {repo.language or 'not set'}",
            f"  Main branch: {repo.mainbranch.name}" if repo.mainbranch else None,
            f"  Project: {repo.project.name} [{repo.project.key}]"
            if repo.project
            else None,
            f"  Updated: {repo.updated_on}",
            f"  URL: {html_url}" if html_url else None,
        ]
    )


def format_repository_list(repos: List[Repository]) -> str:
    if not repos:
        return "No repositories found."
    return "\n".join(
        f"- {r.full_name}{' (private)' if r.is_private else ''} | "
        f"{r.language or 'n/a'} | updated {r.updated_on}"
        for r in repos
    )


def format_branch(branch: Branch) -> str:
    target = branch.target
    return (
        f"{branch.name} → {target.hash[:SHORT_HASH_CHARS]} "
        f"({_first_line(target.message)})"
    )


def format_branch_list(branches: List[Branch]) -> str:
    if not branches:
        return "No branches found."
    return "\n".join(f"- {format_branch(b)}" for b in branches)


def format_commit(commit: Commit) -> str:
    author = (
        commit.author.user.display_name if commit.author.user else commit.author.raw
    )
    return (
        f"{commit.hash[:SHORT_HASH_CHARS]} {_first_line(commit.message)}\n"
        f"  Author: {author} | Date: {commit.date}"
    )


def format_commit_list(commits: List[Commit]) -> str:
    if not commits:
        return "No commits found."
    return "\n".join(format_commit(c) for c in commits)


def format_directory_entry(entry: DirectoryEntry) -> str:
    if entry.type == "commit_directory":
        return f"{entry.path}/"
    size = f" ({entry.size} bytes)" if entry.size is not None else ""
    return f"{entry.path}{size}"


def format_directory_listing(entries: List[DirectoryEntry]) -> str:
    if not entries:
        return "Directory is empty."
    # directories first, then files, each group in server order
    dirs = [e for e in entries if e.type == "commit_directory"]
    files = [e for e in entries if e.type != "commit_directory"]
    return "\n".join(f"- {format_directory_entry(e)}" for e in dirs + files)


def format_code_search_result(result: CodeSearchResult) -> str:
    lines = [f"{result.file.path} ({result.content_match_count} matches)"]
    for match in result.content_matches:
        for line in match.lines:
            text = "".join(seg.text for seg in line.segments)
            lines.append(f"  {line.line}: {text}")
    return "\n".join(lines)


def format_code_search_results(results: List[CodeSearchResult]) -> str:
    if not results:
        return "No code search results found."
    return "\n\n".join(format_code_search_result(r) for r in results)


def _format_participant(p: Participant) -> str:
    status = "approved" if p.approved else (p.state or "none")
    return f"{p.user.display_name} ({p.role}: {status})"


def format_pull_request(pr: PullRequest) -> str:
    return _lines(
        [
            f"PR #{pr.id}: {pr.title}",
            f"  State: {pr.state} | Author: {format_user(pr.author)}",
            f"  Branch: {pr.source.branch.name} → {pr.destination.branch.name}",
            f"  Description: {pr.description[:DESCRIPTION_PREVIEW_CHARS]}"
            if pr.description
            else None,
            f"  Created: {pr.created_on} | Updated: {pr.updated_on}",
            f"  Comments: {pr.comment_count} | Tasks: {pr.task_count}",
            "  Participants: "
            + ", ".join(_format_participant(p) for p in pr.participants)
            if pr.participants
            else None,
            "  Reviewers: " + ", ".join(r.display_name for r in pr.reviewers)
            if pr.reviewers
            else None,
        ]
    )


def format_pull_request_list(prs: List[PullRequest]) -> str:
    if not prs:
        return "No pull requests found."
    return "\n".join(
        f"- #{pr.id} [{pr.state}] {pr.title} "
        f"({pr.source.branch.name} → {pr.destination.branch.name}) "
        f"by {pr.author.display_name}"
        for pr in prs
    )


def format_pr_comment(comment: PullRequestComment) -> str:
    location = ""
    if comment.inline:
        line = f":{comment.inline.to}" if comment.inline.to else ""
        location = f" [{comment.inline.path}{line}]"
    parent = f" (reply to #{comment.parent.id})" if comment.parent else ""
    return (
        f"#{comment.id}{location}{parent} by {comment.user.display_name} "
        f"at {comment.created_on}:\n  {comment.content.raw}"
    )


def format_pr_activity(activities: List[PullRequestActivity]) -> str:
    if not activities:
        return "No activity found."
    lines = []
    for a in activities:
        if a.comment:
            lines.append(f"[comment] {format_pr_comment(a.comment)}")
        elif a.approval:
            lines.append(
                f"[approved] by {a.approval.user.display_name} at {a.approval.date}"
            )
        elif a.update:
            lines.append(
                f"[update] {a.update.state} by {a.update.author.display_name} "
                f"at {a.update.date}"
            )
        else:
            lines.append("[unknown activity]")
    return "\n".join(lines)


def format_diffstat(entries: List[DiffStatEntry]) -> str:
    if not entries:
        return "No changes."
    lines = []
    for e in entries:
        path = (e.new and e.new.path) or (e.old and e.old.path) or "unknown"
        lines.append(f"{e.status:<10} {path} (+{e.lines_added} -{e.lines_removed})")
    added = sum(e.lines_added for e in entries)
    removed = sum(e.lines_removed for e in entries)
    lines.append(f"\nTotal: {len(entries)} files changed, +{added} -{removed}")
    return "\n".join(lines)


def format_issue(issue: Issue) -> str:
    return _lines(
        [
            f"#{issue.id}: {issue.title}",
            f"  State: {issue.state} | Priority: {issue.priority} | Kind: {issue.kind}",
            f"  Reporter: {format_user(issue.reporter)}",
            f"  Assignee: {format_user(issue.assignee)}" if issue.assignee else None,
            f"  Description: {issue.content.raw[:DESCRIPTION_PREVIEW_CHARS]}"
            if issue.content.raw
            else None,
            f"  Created: {issue.created_on} | Updated: {issue.updated_on}",
            f"  Votes: {issue.votes} | Watches: {issue.watches}",
        ]
    )


def format_issue_list(issues: List[Issue]) -> str:
    if not issues:
        return "No issues found."
    return "\n".join(
        f"- #{i.id} [{i.state}] {i.title} ({i.priority}/{i.kind}) "
        f"by {i.reporter.display_name}"
        for i in issues
    )


def format_issue_comment(comment: IssueComment) -> str:
    return (
        f"#{comment.id} by {comment.user.display_name} at {comment.created_on}:\n"
        f"  {comment.content.raw}"
    )


def format_pipeline(pipeline: Pipeline) -> str:
    state = pipeline.state.name
    if pipeline.state.result:
        state = f"{state}:{pipeline.state.result.name}"
    ref = pipeline.target.ref_name or "manual"
    duration = (
        f"{pipeline.duration_in_seconds}s"
        if pipeline.duration_in_seconds
        else "running"
    )
    return (
        f"#{pipeline.build_number} [{state}] ref:{ref} by "
        f"{pipeline.creator.display_name} ({duration}) started {pipeline.created_on}"
    )


def format_pipeline_list(pipelines: List[Pipeline]) -> str:
    if not pipelines:
        return "No pipelines found."
    return "\n".join(f"- {format_pipeline(p)}" for p in pipelines)
