"""Shared test fixtures — scanner results, policies, temp git repos, mock HTTP."""

from __future__ import annotations

import json
import os
import subprocess
import textwrap
from pathlib import Path
from typing import Any, Callable, Dict, List

import httpx
import pytest

AWS_RAW = "AKIAIOSFODNN7REAL1234"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep SCANGATE_* variables from the developer's shell out of tests."""
    for var in list(os.environ):
        if var.startswith("SCANGATE_"):
            monkeypatch.delenv(var, raising=False)


@pytest.fixture
def sast_result() -> Dict[str, Any]:
    return {
        "check_id": "python.lang.security.audit.eval-detected",
        "path": "app/views.py",
        "start": {"line": 12, "col": 5},
        "end": {"line": 12, "col": 30},
        "extra": {
            "severity": "ERROR",
            "message": "Detected the use of eval()",
            "lines": "    return eval(expr)",
        },
    }


@pytest.fixture
def sca_section() -> Dict[str, Any]:
    return {
        "requirements.txt": {
            "packages": [
                {
                    "package": {"name": "django", "version": "3.2.0", "ecosystem": "PyPI"},
                    "vulnerabilities": [
                        {
                            "id": "GHSA-2gwj-7jmv-h26r",
                            "summary": "SQL injection in QuerySet.annotate",
                            "details": "Django 3.2 before 3.2.14 allows SQL injection.",
                            "aliases": ["CVE-2022-34265"],
                            "database_specific": {"severity": "MODERATE", "cwe_id": ["CWE-89"]},
                        }
                    ],
                }
            ]
        },
        "frontend/package-lock.json": {"packages": []},
    }


@pytest.fixture
def secret_section() -> Dict[str, Any]:
    return {
        "results": [
            {
                "DetectorName": "AWS",
                "DecoderName": "PLAIN",
                "Raw": AWS_RAW,
                "SourceMetadata": {"Data": {"Filesystem": {"file": "a.py", "line": 1}}},
            }
        ]
    }


@pytest.fixture
def license_section() -> Dict[str, Any]:
    return {
        "requirements.txt": {
            "django": ["BSD-3-Clause"],
            "ghostscript": ["AGPL-3.0"],
        }
    }


@pytest.fixture
def results_document(sast_result, sca_section, secret_section, license_section) -> Dict[str, Any]:
    return {
        "sast": [sast_result],
        "sca": sca_section,
        "secret": secret_section,
        "license": license_section,
    }


@pytest.fixture
def write_results(tmp_path: Path) -> Callable[[Dict[str, Any]], Path]:
    def _write(document: Dict[str, Any], name: str = "output.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(document))
        return path

    return _write


@pytest.fixture
def write_policy(tmp_path: Path) -> Callable[[str], Path]:
    def _write(body: str, name: str = "policy.yaml") -> Path:
        path = tmp_path / name
        path.write_text(textwrap.dedent(body))
        return path

    return _write


class RecordingTransport:
    """httpx.MockTransport handler that records every request."""

    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.requests: List[httpx.Request] = []
        self.status_code = status_code
        self.payload = payload
        self.text = text

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.payload is not None:
            return httpx.Response(self.status_code, json=self.payload)
        return httpx.Response(self.status_code, text=self.text)


@pytest.fixture
def recorder() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def http_client(recorder: RecordingTransport):
    with httpx.Client(transport=httpx.MockTransport(recorder)) as client:
        yield client


@pytest.fixture
def tmp_git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository for integration tests."""
    repo = tmp_path / "repo"
    repo.mkdir()
    subprocess.run(["git", "init", str(repo)], capture_output=True, check=True)
    subprocess.run(
        ["git", "config", "user.email", "test@test.com"],
        cwd=repo, capture_output=True, check=True,
    )
    subprocess.run(
        ["git", "config", "user.name", "Test"],
        cwd=repo, capture_output=True, check=True,
    )
    (repo / "a.py").write_text(f'AWS_KEY = "{AWS_RAW}"\nprint("hello")\n')
    subprocess.run(["git", "add", "."], cwd=repo, capture_output=True, check=True)
    subprocess.run(
        ["git", "commit", "-m", "init"],
        cwd=repo, capture_output=True, check=True,
    )
    return repo


def head_commit(repo: Path) -> str:
    out = subprocess.run(
        ["git", "rev-parse", "HEAD"], cwd=repo, capture_output=True, text=True, check=True,
    )
    return out.stdout.strip()
