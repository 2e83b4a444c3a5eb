"""Authorship attribution for code locations.

Strategies run in priority order and the first one that produces a result
wins. A strategy never raises: any failure simply hands over to the next
one, and when all of them fail the caller gets an all-null AttributionInfo.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import httpx

from scangate.config.schema import AttributionConfig, Workspace
from scangate.findings.models import AttributionInfo
from scangate.git.adapter import (
    GitError,
    RemoteRepo,
    blame_porcelain,
    latest_commit,
    parse_remote,
    relative_to_repo,
)

logger = logging.getLogger(__name__)

_NULL = AttributionInfo()
_UNCOMMITTED = "0" * 40


@dataclass(frozen=True)
class LocationQuery:
    path: str
    start_line: Optional[int] = None
    end_line: Optional[int] = None


def _text_or_none(value: object) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def parse_blame(output: str) -> Optional[AttributionInfo]:
    """Extract author (or committer) and commit hash from porcelain blame."""
    fields: Dict[str, str] = {}
    commit_hash = ""
    for line in output.splitlines():
        if not line or line.startswith("\t"):
            continue
        if not commit_hash:
            commit_hash = line.split()[0]
        key, _, value = line.partition(" ")
        if key in ("author", "author-mail", "committer", "committer-mail") and key not in fields:
            fields[key] = value.strip().lstrip("<").rstrip(">")

    if not commit_hash or commit_hash == _UNCOMMITTED:
        return None
    name = fields.get("author") or fields.get("committer")
    email = fields.get("author-mail") or fields.get("committer-mail")
    if not (name or email):
        return None
    return AttributionInfo(name=name or None, email=email or None, commit_hash=commit_hash)


class AttributionStrategy(ABC):
    name: str = "strategy"

    @abstractmethod
    def resolve(self, query: LocationQuery) -> Optional[AttributionInfo]:
        """Return attribution or None; must not raise."""


class BlameStrategy(AttributionStrategy):
    """Local ``git blame`` over the reported line range."""

    name = "blame"

    def __init__(self, repo_dir: Path, timeout: int = 30) -> None:
        self.repo_dir = repo_dir
        self.timeout = timeout

    def resolve(self, query: LocationQuery) -> Optional[AttributionInfo]:
        start = query.start_line or 0
        if start < 1:
            return None
        end = max(query.end_line or start, start)
        path = relative_to_repo(query.path, self.repo_dir)
        try:
            output = blame_porcelain(self.repo_dir, path, start, end, timeout=self.timeout)
        except GitError as exc:
            logger.debug("blame failed for %s:%d-%d: %s", path, start, end, exc)
            return None
        return parse_blame(output)


class RemoteApiStrategy(AttributionStrategy):
    """Latest commit touching the file, looked up on the hosting API."""

    name = "remote-api"

    def __init__(
        self,
        repo_dir: Path,
        remote: RemoteRepo,
        client: httpx.Client,
        timeout: int = 30,
    ) -> None:
        self.repo_dir = repo_dir
        self.remote = remote
        self.client = client
        self.timeout = timeout

    def resolve(self, query: LocationQuery) -> Optional[AttributionInfo]:
        path = relative_to_repo(query.path, self.repo_dir)
        try:
            sha = latest_commit(self.repo_dir, path, timeout=self.timeout)
        except GitError as exc:
            logger.debug("git log failed for %s: %s", path, exc)
            return None
        if not sha:
            return None

        headers = {"User-Agent": "scangate", "Accept": "application/vnd.github+json"}
        if self.remote.token:
            headers["Authorization"] = f"Bearer {self.remote.token}"
        try:
            response = self.client.get(self.remote.commit_api_url(sha), headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Error fetching commit info from %s: %s", self.remote.host, exc)
            return None
        if response.status_code != 200:
            logger.debug("Commit lookup for %s returned %s", sha, response.status_code)
            return None
        try:
            payload = response.json()
        except ValueError:
            return None

        if not isinstance(payload, dict):
            logger.debug("Commit lookup for %s returned a non-object body", sha)
            return None
        commit = payload.get("commit")
        author = commit.get("author") if isinstance(commit, dict) else None
        if not isinstance(author, dict):
            author = {}
        found = payload.get("sha")
        return AttributionInfo(
            name=_text_or_none(author.get("name")),
            email=_text_or_none(author.get("email")),
            commit_hash=found if isinstance(found, str) and found else sha,
        )


class AttributionResolver:
    """Ordered strategy chain with a per-run cache."""

    def __init__(self, strategies: Sequence[AttributionStrategy]) -> None:
        self.strategies: List[AttributionStrategy] = list(strategies)
        self._cache: Dict[Tuple[str, Optional[int], Optional[int]], AttributionInfo] = {}

    def resolve(
        self,
        path: str,
        start_line: Optional[int] = None,
        end_line: Optional[int] = None,
    ) -> AttributionInfo:
        key = (path, start_line, end_line)
        if key in self._cache:
            return self._cache[key]

        query = LocationQuery(path=path, start_line=start_line, end_line=end_line)
        info = _NULL
        for strategy in self.strategies:
            try:
                result = strategy.resolve(query)
            except Exception as exc:
                logger.debug("%s strategy failed for %s: %s", strategy.name, path, exc)
                continue
            if result is not None and result.resolved:
                logger.debug("Attributed %s via %s", path, strategy.name)
                info = result
                break

        self._cache[key] = info
        return info


def build_resolver(
    config: AttributionConfig,
    workspace: Workspace,
    client: httpx.Client,
) -> AttributionResolver:
    """Assemble the chain available for this workspace."""
    strategies: List[AttributionStrategy] = []
    repo_dir = workspace.repo_dir
    if config.enabled and repo_dir is not None:
        strategies.append(BlameStrategy(repo_dir, timeout=config.git_timeout))
        remote = parse_remote(workspace.source_url) if workspace.source_url else None
        if config.remote_api and remote is not None:
            strategies.append(RemoteApiStrategy(repo_dir, remote, client, timeout=config.git_timeout))
    return AttributionResolver(strategies)
