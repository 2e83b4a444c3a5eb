"""Tests for policy loading and gate evaluation."""

from pathlib import Path

import httpx
import pytest

from conftest import RecordingTransport
from scangate.errors import PolicySourceError
from scangate.findings.aggregator import Aggregate
from scangate.findings.models import ScanKind, empty_counts
from scangate.policy.evaluator import NO_POLICY_REASON, evaluate
from scangate.policy.loader import load_policy, parse_policy
from scangate.policy.models import ExitClass, Operator, ThresholdRule

ALL_KINDS = list(ScanKind)


def _agg(**kwargs) -> Aggregate:
    agg = Aggregate()
    for kind, sev_counts in kwargs.pop("counts", {}).items():
        agg.counts[kind] = {**empty_counts(), **sev_counts}
    for name, value in kwargs.items():
        setattr(agg, name, value)
    return agg


class TestParsePolicy:
    def test_full_document(self):
        policy = parse_policy({
            "sast": {"high": {"operator": "greater_than", "value": 2}},
            "sca": {"critical_count": {"operator": "equal_to", "value": 0}},
            "dep": {"contains": ["lodash"]},
            "secret": {"contains": ["AWS"], "operator": "greater_than", "value": 0},
            "license": {"contains": ["GPL-3.0"]},
        })
        assert policy.sast == [ThresholdRule("high", Operator.GREATER_THAN, 2)]
        assert policy.sca == [ThresholdRule("critical", Operator.EQUAL_TO, 0)]
        assert policy.dep.contains == ("lodash",)
        assert policy.secret.contains == ("AWS",)
        assert policy.secret_count == ThresholdRule("total", Operator.GREATER_THAN, 0)
        assert policy.license.contains == ("GPL-3.0",)

    def test_empty_document(self):
        policy = parse_policy(None)
        assert policy.is_empty

    def test_missing_sections_are_none(self):
        policy = parse_policy({"sast": {"high": {"operator": "less_than", "value": 1}}})
        assert policy.dep is None
        assert policy.secret is None
        assert policy.license is None

    def test_unknown_operator(self):
        with pytest.raises(PolicySourceError, match="operator"):
            parse_policy({"sast": {"high": {"operator": "at_least", "value": 1}}})

    def test_unknown_severity(self):
        with pytest.raises(PolicySourceError, match="severity"):
            parse_policy({"sca": {"severe": {"operator": "greater_than", "value": 1}}})

    def test_non_integer_value(self):
        with pytest.raises(PolicySourceError):
            parse_policy({"sast": {"high": {"operator": "greater_than", "value": "3"}}})

    def test_contains_must_be_list(self):
        with pytest.raises(PolicySourceError):
            parse_policy({"dep": {"contains": "lodash"}})

    def test_not_a_mapping(self):
        with pytest.raises(PolicySourceError):
            parse_policy(["sast"])

    def test_unknown_section_warns(self, caplog):
        parse_policy({"iac": {}})
        assert "iac" in caplog.text


class TestLoadPolicy:
    def test_local_file(self, write_policy, http_client):
        path = write_policy("""\
            secret:
              contains:
                - AWS
        """)
        policy = load_policy(str(path), http_client)
        assert policy.secret.contains == ("AWS",)
        assert policy.source == str(path)

    def test_missing_file(self, tmp_path: Path, http_client):
        with pytest.raises(PolicySourceError, match="unable to reach"):
            load_policy(str(tmp_path / "nope.yaml"), http_client)

    def test_invalid_yaml(self, write_policy, http_client):
        path = write_policy("sast: [unclosed\n")
        with pytest.raises(PolicySourceError):
            load_policy(str(path), http_client)

    def test_url_with_cache_buster(self):
        recorder = RecordingTransport(text="license:\n  contains: [agpl-3.0]\n")
        with httpx.Client(transport=httpx.MockTransport(recorder)) as client:
            policy = load_policy("https://policies.example/policy.yaml", client)
        assert policy.license.contains == ("agpl-3.0",)
        assert "cache" in recorder.requests[0].url.params

    def test_url_http_error(self):
        recorder = RecordingTransport(status_code=404, text="not found")
        with httpx.Client(transport=httpx.MockTransport(recorder)) as client:
            with pytest.raises(PolicySourceError):
                load_policy("https://policies.example/policy.yaml", client)


class TestThresholds:
    """Three new high findings against various high rules."""

    @pytest.mark.parametrize(
        "operator,value,fails",
        [
            ("greater_than", 3, False),
            ("greater_than", 2, True),
            ("equal_to", 3, True),
            ("less_than", 4, True),
            ("less_than", 3, False),
        ],
    )
    def test_sast_high(self, operator, value, fails):
        policy = parse_policy({"sast": {"high": {"operator": operator, "value": value}}})
        gate = evaluate(policy, _agg(counts={ScanKind.SAST: {"high": 3}}), ALL_KINDS)
        assert gate.failed is fails
        assert gate.exit_code == (ExitClass.SAST if fails else 0)

    def test_reason_text(self):
        policy = parse_policy({"sast": {"high": {"operator": "greater_than", "value": 2}}})
        gate = evaluate(policy, _agg(counts={ScanKind.SAST: {"high": 3}}), ALL_KINDS)
        assert gate.reason == "Pipeline failed because high count is 3 which is greater than 2"

    def test_sca_threshold(self):
        policy = parse_policy({"sca": {"critical": {"operator": "greater_than", "value": 0}}})
        gate = evaluate(policy, _agg(counts={ScanKind.SCA: {"critical": 1}}), ALL_KINDS)
        assert gate.exit_class is ExitClass.SCA


class TestContainment:
    def test_dep_substring_case_insensitive(self):
        policy = parse_policy({"dep": {"contains": ["DJANGO"]}})
        gate = evaluate(policy, _agg(packages=["django@3.2.0"]), ALL_KINDS)
        assert gate.exit_class is ExitClass.SCA
        assert "django@3.2.0 package" in gate.reason

    def test_dep_without_packages(self):
        policy = parse_policy({"dep": {"contains": ["django"]}})
        assert not evaluate(policy, _agg(), ALL_KINDS).failed

    def test_secret_detector_exact(self):
        policy = parse_policy({"secret": {"contains": ["AWS"]}})
        assert evaluate(policy, _agg(detectors=["AWS"]), ALL_KINDS).exit_class is ExitClass.SECRET
        assert not evaluate(policy, _agg(detectors=["AWSSESSION"]), ALL_KINDS).failed

    def test_secret_count_uses_new_total(self):
        policy = parse_policy({"secret": {"operator": "greater_than", "value": 1}})
        gate = evaluate(policy, _agg(new_totals={ScanKind.SECRET: 2}), ALL_KINDS)
        assert gate.reason == "Pipeline failed because 2 secrets exposed which is greater than 1"

    def test_license_case_insensitive(self):
        policy = parse_policy({"license": {"contains": ["AGPL-3.0"]}})
        gate = evaluate(policy, _agg(licenses=["agpl-3.0"]), ALL_KINDS)
        assert gate.exit_class is ExitClass.LICENSE
        assert gate.reason == "Pipeline failed because agpl-3.0 license is present in blocked list"


class TestEvaluate:
    def test_no_policy_passes(self):
        gate = evaluate(None, _agg(detectors=["AWS"]), ALL_KINDS)
        assert not gate.failed
        assert gate.reason == NO_POLICY_REASON
        assert gate.exit_code == 0
        assert not gate.policy_supplied

    def test_empty_policy_passes(self):
        gate = evaluate(parse_policy(None), _agg(detectors=["AWS"]), ALL_KINDS)
        assert not gate.failed
        assert gate.policy_supplied

    def test_last_violation_wins(self):
        policy = parse_policy({
            "sast": {"high": {"operator": "greater_than", "value": 0}},
            "secret": {"contains": ["AWS"]},
            "license": {"contains": ["mit"]},
        })
        agg = _agg(counts={ScanKind.SAST: {"high": 1}}, detectors=["AWS"], licenses=["mit"])
        gate = evaluate(policy, agg, ALL_KINDS)
        assert [v.scan_type for v in gate.violations] == ["sast", "secret", "license"]
        assert gate.exit_class is ExitClass.LICENSE

    def test_disabled_scan_ignored(self):
        policy = parse_policy({"secret": {"contains": ["AWS"]}})
        gate = evaluate(policy, _agg(detectors=["AWS"]), [ScanKind.SAST, ScanKind.SCA])
        assert not gate.failed
