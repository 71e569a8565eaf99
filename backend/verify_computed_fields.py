"""
Verification script for computed match statistics.
Run: python verify_computed_fields.py [--json]

Runs a hand-authored sample match through normalize + compute and checks
every metric against values worked out independently below.
Edit SAMPLE_RAW_DATA to try other scenarios.
"""

import argparse
import json
import sys

from match_stats import compute_match_stats, normalize_field_names

TOLERANCE = 0.0001

SAMPLE_RAW_DATA = {
    # Game Info
    "Opponent": "Test Opponent",
    "Match Date": "2024-01-15",
    "Competition": "League",
    "Result": "Win",
    "Match Duration": 90,

    # 1st Half
    "Goals For (1st Half)": 2,
    "Goals Against (1st Half)": 0,
    "Shots For (1st Half)": 8,
    "Shots Against (1st Half)": 3,
    "Attempts For (1st Half)": 12,
    "Attempts Against (1st Half)": 5,
    "Passes Completed (1st Half)": 180,
    "Opp Passes Completed (1st Half)": 120,

    # 2nd Half
    "Goals For (2nd Half)": 1,
    "Goals Against (2nd Half)": 1,
    "Shots For (2nd Half)": 6,
    "Shots Against (2nd Half)": 4,
    "Attempts For (2nd Half)": 10,
    "Attempts Against (2nd Half)": 6,
    "Passes Completed (2nd Half)": 200,
    "Opp Passes Completed (2nd Half)": 150,

    # Box attempts (entered as percentages)
    "Inside Box Attempts": 65,
    "Opp Inside Box Attempts": 40,

    # Possession
    "Possession Mins": 47.5,
    "Opp Possession Mins": 36,
    "Possession Def": 35,
    "Possession Mid": 40,
    "Possession Att": 25,

    # Pass strings
    "3-pass string": 5,
    "4-pass string": 8,
    "5-pass string": 12,
    "6-pass string": 10,
    "7-pass string": 6,
    "8-pass string": 3,
    "9-pass string": 1,
    "10-pass string": 0,
    "OPP 3-Pass Strings": 9,
    "OPP 4-Pass Strings": 4,
    "Opponent 6-pass string": 1,
}

FIELDS_TO_CHECK = [
    "goalsFor", "goalsAgainst", "shotsFor", "shotsAgainst",
    "attemptsFor", "attemptsAgainst", "passesFor", "passesAgainst",
    "total attempts", "opp total attempts",
    "tsr", "opp tsr", "conversion rate", "opp conversion rate",
    "pass share", "opp pass share", "ppm", "opp ppm",
    "inside box attempts %", "outside box attempts %",
    "opp inside box attempts %", "opp outside box attempts %",
    "possess % (def)", "possess % (mid)", "possess % (att)",
    "lpc avg",
    "pass strings (3-5)", "pass strings (6+)", "pass strings <4", "pass strings 4+",
    "spi", "spi (w)", "opp spi", "opp spi (w)",
]


def banner(text: str):
    print(f"\n{'='*60}")
    print(f"  {text}")
    print(f"{'='*60}")


def section(text: str):
    print(f"\n--- {text} ---")


def _strings(counts: dict, total_passes: float) -> tuple:
    plain = sum(n * c for n, c in counts.items())
    weighted = sum(n * c * (1 + 0.15 * (n - 3)) for n, c in counts.items())
    return plain / total_passes * 100, weighted / total_passes * 100


def calculate_expected_values(raw: dict) -> dict:
    """Work out every metric by hand from the labelled sample."""
    goals_for = raw["Goals For (1st Half)"] + raw["Goals For (2nd Half)"]
    goals_against = raw["Goals Against (1st Half)"] + raw["Goals Against (2nd Half)"]
    shots_for = raw["Shots For (1st Half)"] + raw["Shots For (2nd Half)"]
    shots_against = raw["Shots Against (1st Half)"] + raw["Shots Against (2nd Half)"]
    attempts_for = raw["Attempts For (1st Half)"] + raw["Attempts For (2nd Half)"]
    attempts_against = raw["Attempts Against (1st Half)"] + raw["Attempts Against (2nd Half)"]
    passes_for = raw["Passes Completed (1st Half)"] + raw["Passes Completed (2nd Half)"]
    passes_against = raw["Opp Passes Completed (1st Half)"] + raw["Opp Passes Completed (2nd Half)"]

    # Veo: attempts = shots + goals
    total_for = goals_for + shots_for
    total_against = goals_against + shots_against

    own = {n: raw[f"{n}-pass string"] for n in range(3, 11) if raw[f"{n}-pass string"] > 0}
    opp = {3: raw["OPP 3-Pass Strings"], 4: raw["OPP 4-Pass Strings"], 6: raw["Opponent 6-pass string"]}
    spi, spi_w = _strings(own, passes_for)
    opp_spi, opp_spi_w = _strings(opp, passes_against)

    return {
        "goalsFor": goals_for,
        "goalsAgainst": goals_against,
        "shotsFor": shots_for,
        "shotsAgainst": shots_against,
        "attemptsFor": attempts_for,
        "attemptsAgainst": attempts_against,
        "passesFor": passes_for,
        "passesAgainst": passes_against,
        "total attempts": total_for,
        "opp total attempts": total_against,
        "tsr": total_for / (total_for + total_against) * 100,
        "opp tsr": total_against / (total_for + total_against) * 100,
        "conversion rate": goals_for / total_for * 100,
        "opp conversion rate": goals_against / total_against * 100,
        "pass share": passes_for / (passes_for + passes_against) * 100,
        "opp pass share": passes_against / (passes_for + passes_against) * 100,
        "ppm": passes_for / raw["Possession Mins"],
        "opp ppm": passes_against / raw["Opp Possession Mins"],
        "inside box attempts %": raw["Inside Box Attempts"],
        "outside box attempts %": 100 - raw["Inside Box Attempts"],
        "opp inside box attempts %": raw["Opp Inside Box Attempts"],
        "opp outside box attempts %": 100 - raw["Opp Inside Box Attempts"],
        "possess % (def)": raw["Possession Def"],
        "possess % (mid)": raw["Possession Mid"],
        "possess % (att)": raw["Possession Att"],
        "lpc avg": max(own),
        "pass strings (3-5)": sum(own.get(n, 0) for n in (3, 4, 5)),
        "pass strings (6+)": sum(own.get(n, 0) for n in range(6, 11)),
        "pass strings <4": own.get(3, 0),
        "pass strings 4+": sum(own.get(n, 0) for n in range(4, 11)),
        "spi": spi,
        "spi (w)": spi_w,
        "opp spi": opp_spi,
        "opp spi (w)": opp_spi_w,
    }


def compare_values(computed: dict, expected: dict, field: str) -> dict:
    computed_val = computed.get(field)
    expected_val = expected.get(field)
    if computed_val is None and expected_val is None:
        return {"match": True, "computed": None, "expected": None}
    if computed_val is None or expected_val is None:
        return {"match": False, "computed": computed_val, "expected": expected_val}
    diff = abs(computed_val - expected_val)
    return {"match": diff < TOLERANCE, "computed": computed_val, "expected": expected_val, "diff": diff}


def verify(raw: dict = None, as_json: bool = False) -> bool:
    """Run the sample through the engine and report per-field results."""
    raw = raw or SAMPLE_RAW_DATA
    normalized = normalize_field_names(raw)
    computed = compute_match_stats(normalized)
    expected = calculate_expected_values(raw)
    results = {field: compare_values(computed, expected, field) for field in FIELDS_TO_CHECK}
    all_match = all(r["match"] for r in results.values())

    if as_json:
        print(json.dumps({"normalized": normalized, "computed": computed,
                          "results": results, "ok": all_match}, indent=2))
        return all_match

    banner("Verifying Computed Match Statistics")
    section("Normalized Input")
    print(json.dumps(normalized, indent=2))
    section("Computed Statistics")
    print(json.dumps(computed, indent=2))

    section("Verification Results")
    for field, r in results.items():
        status = "✅" if r["match"] else "❌"
        print(f"  {status} {field:<28} computed={r['computed']}  expected={r['expected']}")
        if not r["match"] and r.get("diff") is not None:
            print(f"       difference: {r['diff']}")

    banner("SUMMARY")
    if all_match:
        print("  All computed fields match the expected values.")
    else:
        failed = [f for f, r in results.items() if not r["match"]]
        print(f"  {len(failed)} field(s) do not match: {', '.join(failed)}")
    print()
    return all_match


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Verify match stat formulas against a hand-worked sample.")
    parser.add_argument("--json", action="store_true", help="print machine-readable results")
    args = parser.parse_args(argv)
    return 0 if verify(as_json=args.json) else 1


if __name__ == "__main__":
    sys.exit(main())
