"""Tests for the CLI commands."""

import json
import re
from pathlib import Path

from typer.testing import CliRunner

from scangate.cli import app

runner = CliRunner()

SECRET_DOC = {
    "secret": {
        "results": [
            {
                "DetectorName": "AWS",
                "Raw": "AKIAIOSFODNN7REAL1234",
                "SourceMetadata": {"Data": {"Filesystem": {"file": "a.py", "line": 1}}},
            }
        ]
    }
}


def _workspace(tmp_path: Path, monkeypatch, document=SECRET_DOC, policy: str = "") -> Path:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "output.json").write_text(json.dumps(document))
    if policy:
        (tmp_path / "policy.yaml").write_text(policy)
    return tmp_path


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "scangate" in result.output


class TestInit:
    def test_creates_config_and_policy(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 0
        assert (tmp_path / ".scangate.toml").exists()
        assert (tmp_path / "policy.yaml").exists()

    def test_without_policy(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["init", "--no-policy"])
        assert result.exit_code == 0
        assert not (tmp_path / "policy.yaml").exists()

    def test_refuses_overwrite(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".scangate.toml").write_text("existing")
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 1
        assert (tmp_path / ".scangate.toml").read_text() == "existing"


class TestRun:
    def test_no_results(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["run"])
        assert result.exit_code == 0
        assert "nothing to gate" in result.output

    def test_secret_policy_fails(self, tmp_path: Path, monkeypatch):
        _workspace(tmp_path, monkeypatch, policy="secret:\n  contains: [AWS]\n")
        result = runner.invoke(app, ["run", "--policy", "policy.yaml", "--store", "memory"])
        assert result.exit_code == 104
        assert "Pipeline Failed" in result.output
        assert "AKIAIOSFODNN7REAL1234" not in result.output
        assert (tmp_path / "sarif_report.json").exists()

    def test_without_policy_passes(self, tmp_path: Path, monkeypatch):
        _workspace(tmp_path, monkeypatch)
        result = runner.invoke(app, ["run"])
        assert result.exit_code == 0
        assert "Pipeline Passed" in result.output

    def test_disabled_scan_passes(self, tmp_path: Path, monkeypatch):
        _workspace(tmp_path, monkeypatch, policy="secret:\n  contains: [AWS]\n")
        result = runner.invoke(app, ["run", "-p", "policy.yaml", "--no-secret"])
        assert result.exit_code == 0

    def test_file_ledger_second_run_passes(self, tmp_path: Path, monkeypatch):
        _workspace(tmp_path, monkeypatch, policy="secret:\n  contains: [AWS]\n")
        args = ["run", "-p", "policy.yaml", "--store", "file"]
        assert runner.invoke(app, args).exit_code == 104
        assert runner.invoke(app, args).exit_code == 0

    def test_bad_policy_exits_2(self, tmp_path: Path, monkeypatch):
        _workspace(tmp_path, monkeypatch)
        result = runner.invoke(app, ["run", "--policy", "missing.yaml"])
        assert result.exit_code == 2
        assert "unable to reach policy file" in result.output

    def test_malformed_results_exit_2(self, tmp_path: Path, monkeypatch):
        _workspace(tmp_path, monkeypatch, document={"sast": {"oops": 1}})
        result = runner.invoke(app, ["run"])
        assert result.exit_code == 2

    def test_invalid_store(self, tmp_path: Path, monkeypatch):
        _workspace(tmp_path, monkeypatch)
        result = runner.invoke(app, ["run", "--store", "redis"])
        assert result.exit_code == 2

    def test_mongo_without_uri(self, tmp_path: Path, monkeypatch):
        _workspace(tmp_path, monkeypatch)
        result = runner.invoke(app, ["run", "--store", "mongo"])
        assert result.exit_code == 2

    def test_bad_config_exits_2(self, tmp_path: Path, monkeypatch):
        _workspace(tmp_path, monkeypatch)
        (tmp_path / ".scangate.toml").write_text("not [valid")
        result = runner.invoke(app, ["run"])
        assert result.exit_code == 2

    def test_unwritable_report_exits_2(self, tmp_path: Path, monkeypatch):
        _workspace(tmp_path, monkeypatch)
        (tmp_path / "blocker").write_text("not a directory")
        result = runner.invoke(app, ["run", "--report", "blocker/r.json"])
        assert result.exit_code == 2
        assert "cannot write SARIF report" in result.output


class TestCheckPolicy:
    def test_valid_policy(self, tmp_path: Path):
        path = tmp_path / "policy.yaml"
        path.write_text("sast:\n  high:\n    operator: greater_than\n    value: 2\n")
        result = runner.invoke(app, ["check-policy", str(path)])
        assert result.exit_code == 0
        assert "Policy is valid" in result.output

    def test_empty_policy(self, tmp_path: Path):
        path = tmp_path / "policy.yaml"
        path.write_text("")
        result = runner.invoke(app, ["check-policy", str(path)])
        assert result.exit_code == 0
        assert "no rules" in result.output

    def test_invalid_policy(self, tmp_path: Path):
        path = tmp_path / "policy.yaml"
        path.write_text("sast:\n  high:\n    operator: at_least\n    value: 2\n")
        result = runner.invoke(app, ["check-policy", str(path)])
        assert result.exit_code == 2


class TestFingerprint:
    def test_prints_hashes(self, tmp_path: Path, monkeypatch):
        _workspace(tmp_path, monkeypatch)
        result = runner.invoke(app, ["fingerprint", "output.json"])
        assert result.exit_code == 0
        assert re.search(r"^[0-9a-f]{64}\s+SECRET\s+AWS\s+a\.py:1$", result.output, re.M)

    def test_missing_file(self, tmp_path: Path):
        result = runner.invoke(app, ["fingerprint", str(tmp_path / "nope.json")])
        assert result.exit_code == 2
