"""Tests for the hypothesis tester scan."""

import pytest

from lattice.scans.hypothesis import scan_hypothesis_tester
from lattice.types import Severity


def _run(make_agent, ingest, scan_ctx, raw):
    return scan_hypothesis_tester(ingest(raw), make_agent("hypothesis_tester"), scan_ctx)


def test_confident_hypothesis_without_evidence(make_agent, ingest, scan_ctx, days_ago):
    findings = _run(make_agent, ingest, scan_ctx, [
        {"id": "h", "type": "hypothesis", "confidence": 0.9, "createdAt": days_ago(1)},
    ])
    assert [f.finding_type for f in findings] == ["unsupported_hypothesis"]
    assert findings[0].severity == Severity.MEDIUM


def test_stale_hypothesis(make_agent, ingest, scan_ctx, days_ago):
    findings = _run(make_agent, ingest, scan_ctx, [
        {"id": "h", "tags": ["hypothesis"], "confidence": 0.3, "createdAt": days_ago(20)},
    ])
    assert [f.finding_type for f in findings] == ["stale_hypothesis"]
    assert findings[0].severity == Severity.LOW
    assert findings[0].data["age"] == 20


def test_evidence_recommends_promotion(make_agent, ingest, scan_ctx, days_ago):
    findings = _run(make_agent, ingest, scan_ctx, [
        {"id": "h", "dtuType": "hypothesis", "confidence": 0.2,
         "evidence": ["e1", "e2", "e3", "e4", "e5"], "createdAt": days_ago(1)},
    ])
    assert [f.finding_type for f in findings] == ["hypothesis_promote"]
    assert findings[0].data["recommended_confidence"] == pytest.approx(0.8)
    assert findings[0].data["current_confidence"] == 0.2


def test_weak_evidence_recommends_demotion(make_agent, ingest, scan_ctx, days_ago):
    findings = _run(make_agent, ingest, scan_ctx, [
        {"id": "h", "type": "hypothesis", "confidence": 0.95,
         "evidence": ["e1"], "createdAt": days_ago(1)},
    ])
    assert [f.finding_type for f in findings] == ["hypothesis_demote"]
    assert findings[0].severity == Severity.LOW
    assert findings[0].data["recommended_confidence"] == pytest.approx(0.4)


def test_calibrated_hypothesis_is_quiet(make_agent, ingest, scan_ctx, days_ago):
    findings = _run(make_agent, ingest, scan_ctx, [
        {"id": "h", "type": "hypothesis", "confidence": 0.55,
         "evidence": ["e1", "e2"], "createdAt": days_ago(1)},
    ])
    assert findings == []


def test_non_hypotheses_are_ignored(make_agent, ingest, scan_ctx, days_ago):
    findings = _run(make_agent, ingest, scan_ctx, [
        {"id": "fact", "confidence": 0.99, "createdAt": days_ago(100)},
    ])
    assert findings == []
