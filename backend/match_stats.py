"""
Match Stats Engine — Derives dashboard metrics from raw match input.

Raw stats arrive from the match form, image extraction, or bulk imports with
inconsistent labels ("Goals For (1st Half)", "goalsFor1stHalf", "OPP 3-Pass Strings").
The pipeline is:

    normalize_field_names  →  (merge_for_update on edits)  →  compute_match_stats

Veo terminology: a "shot" is a non-scoring shot, so total attempts = shots + goals.

Pass strings:
  "{n}-pass string" (n = 3..10) holds the number of possessions with exactly n
  consecutive passes. Opponent equivalents come under many spellings and are
  located case-insensitively.

Every function here is pure: no I/O, no module state beyond read-only tables.
Bad values never raise — they read as missing and the metric is omitted.
"""

import logging
import math
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger("matchstats")

# ── Field Name Table ─────────────────────────────────────────────────
# Lower-cased label → canonical raw stat key.

_HALF_STATS = [
    # (label stem, canonical stem)
    ("goals for", "goalsFor"),
    ("goals against", "goalsAgainst"),
    ("shots for", "shotsFor"),
    ("shots against", "shotsAgainst"),
    ("attempts for", "attemptsFor"),
    ("attempts against", "attemptsAgainst"),
    ("passes for", "passesFor"),
    ("passes against", "passesAgainst"),
    ("passes completed", "passesFor"),
    ("opp passes completed", "passesAgainst"),
]


def _half_field_mappings() -> Dict[str, str]:
    """Build '<stat> (1st half)', '<stat> 1st half' and camel-case variants per half."""
    mappings = {}
    for half in ("1st", "2nd"):
        suffix = f"{half}Half"
        for label, canonical in _HALF_STATS:
            mappings[f"{label} ({half} half)"] = canonical + suffix
            mappings[f"{label} {half} half"] = canonical + suffix
            mappings[(canonical + suffix).lower()] = canonical + suffix
    return mappings


FIELD_MAPPINGS: Dict[str, str] = {
    # Game Info
    "team": "teamId",
    "team id": "teamId",
    "opponent": "opponentName",
    "opponent name": "opponentName",
    "date": "matchDate",
    "match date": "matchDate",
    "competition": "competitionType",
    "competition type": "competitionType",
    "result": "result",

    # 1st / 2nd Half Stats
    **_half_field_mappings(),

    # Full Game Stats (direct entry or older imports)
    "shots for": "shotsFor",
    "shotsfor": "shotsFor",
    "shots against": "shotsAgainst",
    "shotsagainst": "shotsAgainst",
    "goals for": "goalsFor",
    "goalsfor": "goalsFor",
    "goals against": "goalsAgainst",
    "goalsagainst": "goalsAgainst",
    "attempts for": "attemptsFor",
    "attemptsfor": "attemptsFor",
    "attempts against": "attemptsAgainst",
    "attemptsagainst": "attemptsAgainst",
    "inside box attempts": "insideBoxAttempts",
    "outside box attempts": "outsideBoxAttempts",
    "opp inside box attempts": "oppInsideBoxAttempts",
    "opp outside box attempts": "oppOutsideBoxAttempts",
    "xg": "xG",
    "xga": "xGA",

    # Passing
    "passes for": "passesFor",
    "passesfor": "passesFor",
    "passes against": "passesAgainst",
    "passesagainst": "passesAgainst",

    # Possession
    "possession": "possession",
    "poss": "possession",
    "possession def": "possessionDef",
    "possession mid": "possessionMid",
    "possession att": "possessionAtt",
    "possession mins": "possessionMins",
    "possession minutes": "possessionMins",
    "opp possession mins": "oppPossessionMins",
    "opp possession minutes": "oppPossessionMins",

    # Set Pieces
    "corners for": "cornersFor",
    "corners against": "cornersAgainst",
    "free kicks for": "freeKicksFor",
    "free kicks against": "freeKicksAgainst",

    # Match Info
    "match duration": "matchDuration",
    "duration": "matchDuration",
    "venue": "venue",
    "referee": "referee",
    "notes": "notes",
}

_HALF_MARKERS = {
    "1stHalf": ("1st half", "first half", "(1st", "(first"),
    "2ndHalf": ("2nd half", "second half", "(2nd", "(second"),
}

# Checked in order against the label.
_HALF_PATTERN_STATS = [("goal", "goals"), ("shot", "shots"), ("attempt", "attempts")]

PASS_STRING_LENGTHS = range(3, 11)
PASS_STRING_BONUS = 0.15

# Opponent pass-string spellings, tried in order before the fallback scan.
OPP_PASS_STRING_PATTERNS = [
    "opp {n}-pass strings",
    "opp {n}-pass string",
    "opponent {n}-pass strings",
    "opponent {n}-pass string",
    "opp {n} pass strings",
    "opponent {n} pass strings",
    "opp {n}-pass",
    "opponent {n}-pass",
]

LPC_KEY = "lpc avg"


# ── Value Helpers ────────────────────────────────────────────────────

def _safe_number(val) -> Optional[float]:
    """Coerce a stat value to int/float, returning None when it isn't numeric."""
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, (int, float)):
        return val if math.isfinite(val) else None
    if not isinstance(val, str):
        return None
    cleaned = val.strip().rstrip("%").strip()
    if not cleaned:
        return None
    try:
        f = float(cleaned)
    except ValueError:
        return None
    if not math.isfinite(f):
        return None
    if f.is_integer() and "." not in cleaned and "e" not in cleaned.lower():
        return int(f)
    return f


def _count(raw: Dict[str, Any], key: str) -> float:
    """Numeric value of a raw field, 0 when missing or unparseable."""
    return _safe_number(raw.get(key)) or 0


def _positive(val) -> bool:
    return val is not None and val > 0


def _pct(numerator: float, denominator: float) -> float:
    return (numerator / denominator) * 100


# ── Field Normalizer ─────────────────────────────────────────────────

def _match_half_pattern(label: str) -> Optional[str]:
    """Resolve free-text half labels such as 'Shots For (1st)' to a canonical half key."""
    for suffix, markers in _HALF_MARKERS.items():
        if not any(m in label for m in markers):
            continue
        for word, stem in _HALF_PATTERN_STATS:
            if word not in label:
                continue
            if "for" in label:
                return f"{stem}For{suffix}"
            if "against" in label:
                return f"{stem}Against{suffix}"
    return None


def normalize_field_names(form_input: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map form labels / import headers onto canonical raw stat keys.

    Resolution order per key: exact table lookup, half-label pattern,
    then pass-through under the original key (pass strings and unknown
    fields are kept, never dropped). Normalizing twice is a no-op.
    """
    normalized: Dict[str, Any] = {}
    for key, value in (form_input or {}).items():
        label = str(key).strip().lower()

        canonical = FIELD_MAPPINGS.get(label)
        if canonical is None:
            canonical = _match_half_pattern(label)
        if canonical is None:
            if "pass string" not in label:
                logger.debug("Unmapped stat field kept as-is: %r", key)
            canonical = key

        normalized[canonical] = value
    return normalized


# ── Half Aggregator ──────────────────────────────────────────────────

def _full_game(raw: Dict[str, Any], key: str) -> Optional[float]:
    """
    Full-game value for a per-half stat.

    Once either half is positive the half sum wins over any directly
    entered full-game value; only with no half data does the direct value apply.
    """
    first = _count(raw, f"{key}1stHalf")
    second = _count(raw, f"{key}2ndHalf")
    if first > 0 or second > 0:
        direct = _safe_number(raw.get(key))
        if direct is not None and direct != first + second:
            logger.debug("%s: half sum %s overrides direct value %s", key, first + second, direct)
        return first + second
    return _safe_number(raw.get(key))


def _total_attempts(raw: Dict[str, Any], side: str, goals: Optional[float],
                    shots: Optional[float]) -> Tuple[float, float, float]:
    """Attempts (goals + shots) for 1st half, 2nd half and full game."""
    first = _count(raw, f"goals{side}1stHalf") + _count(raw, f"shots{side}1stHalf")
    second = _count(raw, f"goals{side}2ndHalf") + _count(raw, f"shots{side}2ndHalf")
    if first > 0 or second > 0:
        return first, second, first + second
    return first, second, (goals or 0) + (shots or 0)


# ── Pass Strings ─────────────────────────────────────────────────────

def _pass_string_counts(raw: Dict[str, Any]) -> Dict[int, float]:
    """Positive '{n}-pass string' counts keyed by string length."""
    counts = {}
    for n in PASS_STRING_LENGTHS:
        value = _safe_number(raw.get(f"{n}-pass string"))
        if _positive(value):
            counts[n] = value
    return counts


def _find_opp_pass_string(raw: Dict[str, Any], lowered: Dict[str, Any], n: int) -> Optional[float]:
    for pattern in OPP_PASS_STRING_PATTERNS:
        value = _safe_number(lowered.get(pattern.format(n=n)))
        if _positive(value):
            return value

    # Fallback: any key naming the opponent, the length and "string"
    for key, raw_value in raw.items():
        label = str(key).lower()
        if (("opp" in label or "opponent" in label)
                and (f"{n}-pass" in label or f"{n} pass" in label)
                and "string" in label):
            value = _safe_number(raw_value)
            if _positive(value):
                return value
    return None


def _opp_pass_string_counts(raw: Dict[str, Any]) -> Dict[int, float]:
    lowered = {str(k).strip().lower(): v for k, v in raw.items()}
    counts = {}
    for n in PASS_STRING_LENGTHS:
        value = _find_opp_pass_string(raw, lowered, n)
        if value is not None:
            counts[n] = value
    return counts


def _longest_pass_chain(counts: Dict[int, float]) -> Optional[int]:
    return max(counts) if counts else None


def _sustained_passing(counts: Dict[int, float], total_passes: Optional[float]) -> Tuple[Optional[float], Optional[float]]:
    """SPI and weighted SPI: passes inside strings as a share of all passes.

    Weighted SPI adds a 15% bonus per pass beyond 3 (4-pass ×1.15, 5-pass ×1.30, ...).
    """
    if not _positive(total_passes):
        return None, None
    in_strings = 0.0
    weighted = 0.0
    for n, count in counts.items():
        passes = count * n
        in_strings += passes
        weighted += passes * (1 + PASS_STRING_BONUS * max(0, n - 3))
    spi = _pct(in_strings, total_passes) if in_strings > 0 else None
    spi_w = _pct(weighted, total_passes) if weighted > 0 else None
    return spi, spi_w


# ── Metric Calculator ────────────────────────────────────────────────

def compute_match_stats(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Compute every derived metric from normalized raw stats.

    Ratio metrics are only emitted when their denominator is positive;
    a metric that can't be computed is left out rather than set to 0.
    """
    raw = raw or {}
    computed: Dict[str, Any] = {}

    goals_for = _full_game(raw, "goalsFor")
    goals_against = _full_game(raw, "goalsAgainst")
    shots_for = _full_game(raw, "shotsFor")
    shots_against = _full_game(raw, "shotsAgainst")
    attempts_for = _full_game(raw, "attemptsFor")
    attempts_against = _full_game(raw, "attemptsAgainst")
    passes_for = _full_game(raw, "passesFor")
    passes_against = _full_game(raw, "passesAgainst")

    taf_1st, taf_2nd, taf = _total_attempts(raw, "For", goals_for, shots_for)
    taa_1st, taa_2nd, taa = _total_attempts(raw, "Against", goals_against, shots_against)

    # TSR + conversion use total attempts (shots + goals)
    if taf + taa > 0:
        computed["tsr"] = _pct(taf, taf + taa)
        computed["opp tsr"] = _pct(taa, taf + taa)
    if goals_for is not None and taf > 0:
        computed["conversion rate"] = _pct(goals_for, taf)
    if goals_against is not None and taa > 0:
        computed["opp conversion rate"] = _pct(goals_against, taa)

    if passes_for is not None and passes_against is not None:
        total_passes = passes_for + passes_against
        if total_passes > 0:
            computed["pass share"] = _pct(passes_for, total_passes)
            computed["opp pass share"] = _pct(passes_against, total_passes)

    # PPM uses possession minutes, not match duration
    possession_mins = _safe_number(raw.get("possessionMins"))
    if passes_for is not None and _positive(possession_mins):
        computed["ppm"] = passes_for / possession_mins
    opp_possession_mins = _safe_number(raw.get("oppPossessionMins"))
    if passes_against is not None and _positive(opp_possession_mins):
        computed["opp ppm"] = passes_against / opp_possession_mins

    # Box attempts are entered as percentages already
    inside = _safe_number(raw.get("insideBoxAttempts"))
    if inside is not None:
        computed["inside box attempts %"] = inside
        computed["outside box attempts %"] = 100 - inside
    opp_inside = _safe_number(raw.get("oppInsideBoxAttempts"))
    if opp_inside is not None:
        computed["opp inside box attempts %"] = opp_inside
        computed["opp outside box attempts %"] = 100 - opp_inside

    for key, zone in (("possessionDef", "def"), ("possessionMid", "mid"), ("possessionAtt", "att")):
        value = _safe_number(raw.get(key))
        if value is not None:
            computed[f"possess % ({zone})"] = value

    counts = _pass_string_counts(raw)
    lpc = _longest_pass_chain(counts)
    if lpc is not None:
        computed[LPC_KEY] = lpc

    for name, lengths in (
        ("pass strings (3-5)", range(3, 6)),
        ("pass strings (6+)", range(6, 11)),
        ("pass strings <4", range(3, 4)),
        ("pass strings 4+", range(4, 11)),
    ):
        total = sum(counts.get(n, 0) for n in lengths)
        if total > 0:
            computed[name] = total

    spi, spi_w = _sustained_passing(counts, passes_for)
    if spi is not None:
        computed["spi"] = spi
    if spi_w is not None:
        computed["spi (w)"] = spi_w
    opp_spi, opp_spi_w = _sustained_passing(_opp_pass_string_counts(raw), passes_against)
    if opp_spi is not None:
        computed["opp spi"] = opp_spi
    if opp_spi_w is not None:
        computed["opp spi (w)"] = opp_spi_w

    # Full game totals re-exported for charts
    for key, value in (
        ("goalsFor", goals_for),
        ("goalsAgainst", goals_against),
        ("shotsFor", shots_for),
        ("shotsAgainst", shots_against),
        ("attemptsFor", attempts_for),
        ("attemptsAgainst", attempts_against),
        ("passesFor", passes_for),
        ("passesAgainst", passes_against),
    ):
        if value is not None:
            computed[key] = value

    if taf_1st > 0 or taf_2nd > 0:
        computed["total attempts (1st half)"] = taf_1st
        computed["total attempts (2nd half)"] = taf_2nd
    if taf > 0:
        computed["total attempts"] = taf
    if taa_1st > 0 or taa_2nd > 0:
        computed["opp total attempts (1st half)"] = taa_1st
        computed["opp total attempts (2nd half)"] = taa_2nd
    if taa > 0:
        computed["opp total attempts"] = taa

    return computed


# ── Update Merge Policy ──────────────────────────────────────────────

def _is_placeholder(value) -> bool:
    """Values an edit form submits for untouched fields."""
    if value is None:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == 0
    if isinstance(value, str):
        return not value.strip()
    return False


def merge_for_update(existing: Optional[Dict[str, Any]], incoming: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge edited raw stats into the stored stats.

    0, "" and None in ``incoming`` mean "not re-entered" and keep the stored
    value. A stat that is genuinely 0 (no corners) can't be written back
    as 0 through this path.
    """
    merged = dict(existing or {})
    for key, value in (incoming or {}).items():
        if not _is_placeholder(value):
            merged[key] = value
    return merged


# ── Stats JSON ───────────────────────────────────────────────────────

def _with_game_info(raw_stats: Optional[Dict[str, Any]], game_info: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    combined = dict(raw_stats or {})
    for key, value in (game_info or {}).items():
        if value is not None:
            combined[key] = value
    return combined


def build_stats_json(raw_stats: Optional[Dict[str, Any]],
                     game_info: Optional[Dict[str, Any]] = None) -> Tuple[Dict[str, Any], Dict[str, Any], Dict[str, Any]]:
    """Create path: returns (normalized raw, computed, raw + computed)."""
    normalized = normalize_field_names(_with_game_info(raw_stats, game_info))
    computed = compute_match_stats(normalized)
    return normalized, computed, {**normalized, **computed}


def update_stats_json(existing_stats: Optional[Dict[str, Any]],
                      raw_stats: Optional[Dict[str, Any]],
                      game_info: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Update path: merge edited stats into the stored blob, then recompute."""
    normalized = normalize_field_names(_with_game_info(raw_stats, game_info))
    merged = merge_for_update(existing_stats, normalized)
    computed = compute_match_stats(normalize_field_names(merged))
    return {**merged, **computed}
