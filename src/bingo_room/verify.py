from __future__ import annotations

import math
from collections import Counter
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from .errors import PreconditionViolation
from .models import Card, Card90, CardFormat, card_class
from .serialize import card_from_dict
from .uniqueness import duplicate_layouts


def validate_records(
    records: Sequence[Mapping[str, Any]],
) -> Tuple[List[Card], List[Dict[str, str]]]:
    """Rebuild cards from plain records, collecting the ones that fail validation."""
    cards: List[Card] = []
    violations: List[Dict[str, str]] = []
    for idx, record in enumerate(records):
        try:
            cards.append(card_from_dict(record))
        except PreconditionViolation as exc:
            violations.append({"index": str(idx), "id": str(record.get("id")), "reason": str(exc)})
    return cards, violations


def compute_frequencies(cards: Sequence[Card], fmt: CardFormat) -> Dict[int, int]:
    counts: Counter[int] = Counter()
    for card in cards:
        counts.update(card.numbers)
    for x in fmt.full_range():
        counts.setdefault(x, 0)
    return dict(sorted(counts.items()))


def chi2_wilson_hilferty_pvalue(stat: float, df: int) -> float:
    if df <= 0:
        return 1.0
    # Wilson-Hilferty approximation: transform chi-square to normal
    t = (stat / df) ** (1.0 / 3.0)
    mu = 1.0 - 2.0 / (9.0 * df)
    sigma = math.sqrt(2.0 / (9.0 * df))
    z = (t - mu) / sigma
    p_right = 1.0 - 0.5 * (1.0 + math.erf(z / math.sqrt(2.0)))
    return max(0.0, min(1.0, p_right))


def chi2_uniform(observed: Sequence[int]) -> Dict[str, object]:
    """Goodness-of-fit of ``observed`` bucket counts against a flat distribution."""
    total = sum(observed)
    k = len(observed)
    if total == 0 or k < 2:
        return {"stat": 0.0, "df": 0, "p_value": 1.0}
    expected = total / k
    stat = sum((o - expected) ** 2 / expected for o in observed)
    df = k - 1
    return {
        "stat": round(stat, 6),
        "df": df,
        "p_value": round(chi2_wilson_hilferty_pvalue(stat, df), 6),
    }


def column_uniformity(cards: Sequence[Card], fmt: CardFormat) -> Dict[str, Dict[str, object]]:
    """Within each column every number of its range should be equally likely."""
    cls = card_class(fmt)
    freqs = compute_frequencies(cards, fmt)
    out: Dict[str, Dict[str, object]] = {}
    for col in range(cls.COLS):
        observed = [freqs.get(x, 0) for x in cls.column_range(col)]
        out[str(col)] = chi2_uniform(observed)
    return out


def blank_position_uniformity(cards: Sequence[Card]) -> Dict[str, object]:
    """90-ball only: the blank of each row should fall in any column equally often."""
    counts = [0] * Card90.COLS
    for card in cards:
        for row in card.rows():
            counts[row.index(None)] += 1
    return dict(chi2_uniform(counts), counts=counts)


def verify(
    cards: Sequence[Card], *, fmt: CardFormat, alpha: float = 0.001
) -> Dict[str, object]:
    fmt = CardFormat(fmt)
    wrong_format = [c.id for c in cards if c.format is not fmt]
    matching = [c for c in cards if c.format is fmt]
    identical = duplicate_layouts(cards)
    tests: Dict[str, object] = {"columns": column_uniformity(matching, fmt)}
    if fmt is CardFormat.F90:
        tests["blank_positions"] = blank_position_uniformity(matching)

    p_values = [float(t["p_value"]) for t in tests["columns"].values()]  # type: ignore[union-attr]
    if "blank_positions" in tests:
        p_values.append(float(tests["blank_positions"]["p_value"]))  # type: ignore[index]
    min_p = min(p_values) if p_values else 1.0

    return {
        "format": fmt.value,
        "cards": len(cards),
        "frequencies": compute_frequencies(matching, fmt),
        "wrong_format": wrong_format,
        "identical_cards": identical,
        "tests": tests,
        "alpha": alpha,
        "engine": "wilson_hilferty",
        "min_p_value": min_p,
        "ok_format": not wrong_format,
        "ok_no_identical_cards": not identical,
        "ok_uniformity": min_p >= alpha,
    }
