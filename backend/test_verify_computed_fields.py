"""Smoke tests for the offline verification script."""

import json

import verify_computed_fields


def test_sample_matches_hand_worked_values(capsys):
    assert verify_computed_fields.verify() is True
    out = capsys.readouterr().out
    assert "❌" not in out
    assert "All computed fields match" in out


def test_json_output(capsys):
    assert verify_computed_fields.main(["--json"]) == 0
    report = json.loads(capsys.readouterr().out)
    assert report["ok"] is True
    assert report["computed"]["lpc avg"] == 9
    assert report["normalized"]["opponentName"] == "Test Opponent"


def test_mismatch_is_reported():
    computed = {"tsr": 60.0}
    result = verify_computed_fields.compare_values(computed, {"tsr": 68.0}, "tsr")
    assert result["match"] is False
    assert result["diff"] == 8.0
