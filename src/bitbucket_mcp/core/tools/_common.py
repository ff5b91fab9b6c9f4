from __future__ import annotations

from typing import Optional
from urllib.parse import quote

MAX_PAGELEN = 100


def clamp_pagelen(pagelen: Optional[int]) -> Optional[int]:
    """Clamp pagelen into Bitbucket's accepted range; None keeps the server default."""
    if pagelen is None:
        return None
    return max(1, min(pagelen, MAX_PAGELEN))


def repo_path(workspace: str, repo_slug: str, *parts: str | int) -> str:
    path = f"/repositories/{workspace}/{repo_slug}"
    for part in parts:
        path += f"/{part}"
    return path


def encode_segment(value: str) -> str:
    """Percent-encode a single path segment (branch names may contain '/')."""
    return quote(value, safe="")
