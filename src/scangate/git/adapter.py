"""Git subprocess wrapper — blame, log, and remote parsing."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit


class GitError(Exception):
    """Raised when git is unavailable or returns an unexpected error."""


def _run_git(args: list[str], cwd: Path, timeout: int = 30) -> str:
    """Run a git command and return stdout. Raises GitError on failure."""
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
            encoding="utf-8",
            errors="replace",
        )
    except FileNotFoundError:
        raise GitError("git is not installed or not on PATH")
    except NotADirectoryError:
        raise GitError(f"not a directory: {cwd}")
    except subprocess.TimeoutExpired:
        raise GitError(f"git command timed out after {timeout}s: git {' '.join(args)}")

    if result.returncode != 0:
        raise GitError(f"git error: {result.stderr.strip() or f'exit {result.returncode}'}")
    return result.stdout


def relative_to_repo(path: str, repo_dir: Path) -> str:
    """Strip the checkout prefix scanners put in front of reported paths."""
    prefix = str(repo_dir).rstrip("/") + "/"
    if path.startswith(prefix):
        return path[len(prefix):]
    return path[2:] if path.startswith("./") else path


def blame_porcelain(repo_dir: Path, path: str, start: int, end: int, timeout: int = 30) -> str:
    """Return ``git blame --porcelain`` output for lines *start*..*end*."""
    return _run_git(
        ["blame", "-L", f"{start},{end}", "--show-email", "-l", "-t", "-p", "--", path],
        cwd=repo_dir,
        timeout=timeout,
    )


def latest_commit(repo_dir: Path, path: str, timeout: int = 30) -> Optional[str]:
    """Return the hash of the last commit that touched *path*."""
    out = _run_git(["log", "-n", "1", "--pretty=format:%H", "--", path], cwd=repo_dir, timeout=timeout)
    return out.strip() or None


@dataclass(frozen=True)
class RemoteRepo:
    host: str
    owner: str
    name: str
    token: str = ""

    @property
    def api_base(self) -> str:
        if self.host in ("github.com", "www.github.com"):
            return "https://api.github.com"
        return f"https://{self.host}/api/v3"

    def commit_api_url(self, sha: str) -> str:
        return f"{self.api_base}/repos/{self.owner}/{self.name}/commits/{sha}"


def parse_remote(source_url: str) -> Optional[RemoteRepo]:
    """Parse ``https://<token>@host/owner/repo(.git)`` into its parts."""
    parts = urlsplit(source_url)
    if parts.scheme not in ("http", "https") or not parts.hostname:
        return None
    segments = [s for s in parts.path.split("/") if s]
    if len(segments) < 2:
        return None
    name = segments[1][:-4] if segments[1].endswith(".git") else segments[1]
    # Tokens come either as user or as password (x-access-token:<pat>)
    token = parts.password or parts.username or ""
    return RemoteRepo(host=parts.hostname, owner=segments[0], name=name, token=token)
