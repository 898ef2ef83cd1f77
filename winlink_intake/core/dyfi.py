"""DYFI ("Did You Feel It?") intensity - Pure functions.

Computes the Community Decimal Intensity (CDI) of a DYFI questionnaire
and maps it onto the Modified Mercalli Intensity scale.
"""

import math
from dataclasses import dataclass
from typing import Any


# Questionnaire weights used in the CDI sum
CDI_WEIGHTS = {
    "felt": 5.0,
    "fldExperience_shaking": 1.0,
    "fldExperience_reaction": 1.0,
    "fldExperience_stand": 2.0,
    "fldEffects_shelved": 5.0,
    "fldEffects_pictures": 2.0,
    "fldEffects_furniture": 3.0,
    "damage": 5.0,
}

# Damage keywords (in the d_text answer) and their scores
DAMAGE_SCORES = (
    (("_move", "_chim", "_found", "_collapse", "_porch", "_majormodernchim", "_tiltedwall"), 3.0),
    (("_wall", "_pipe", "_win", "_brokenwindows", "_majoroldchim", "_masonryfell"), 2.0),
    (("_crackwallmany", "_crackwall", "_crackfloor", "_crackchim", "_tilesfell"), 1.0),
    (("_crackwallfew",), 0.75),
    (("_crackmin", "_crackwindows"), 0.5),
)

ROMAN_NUMERALS = ("", "I", "II", "III", "IV", "V", "VI", "VII", "VIII", "IX", "X", "XI", "XII")

STRENGTHS = (
    "", "Not Felt", "Weak", "Weak", "Light", "Moderate", "Strong",
    "Very Strong", "Severe", "Violent", "Extreme", "Extreme", "Extreme",
)


@dataclass(frozen=True)
class Intensity:
    """A Modified Mercalli intensity.

    Attributes:
        value: Intensity as an integer, 1 to 12
        numeral: Roman numeral form (e.g., "IV")
        strength: Shaking description (e.g., "Light")
    """
    value: int
    numeral: str
    strength: str


def _leading_int(value: Any) -> int:
    """Parse the leading integer of an answer such as "3 strong"."""
    if value is None:
        return 0
    try:
        return int(str(value).split(" ")[0])
    except ValueError:
        return 0


def _felt_score(answers: dict[str, Any]) -> float:
    others = _leading_int(answers.get("fldSituation_others"))
    felt = _leading_int(answers.get("fldSituation_felt"))
    if others <= 2:
        others = 0
    if others == 3:
        return 0.72
    if others > 3:
        return 1.0
    return float(felt)


def _damage_score(text: str | None) -> float:
    if not text:
        return 0.0
    scores = [
        score for keywords, score in DAMAGE_SCORES
        if any(k in text for k in keywords)
    ]
    return max(scores, default=0.0)


def compute_cdi(answers: dict[str, Any]) -> int:
    """Compute the Community Decimal Intensity of a questionnaire.

    Pure function.

    Args:
        answers: DYFI questionnaire answers

    Returns:
        Intensity from 1 to 12 (1 if the shaking was not felt)
    """
    if str(answers.get("fldSituation_felt", "")) != "1":
        return 1

    total = 0.0
    for key, weight in CDI_WEIGHTS.items():
        if key == "felt":
            value = _felt_score(answers)
        elif key == "damage":
            value = _damage_score(answers.get("d_text"))
        else:
            value = _leading_int(answers.get(key))
        total += value * weight

    if total <= 0:
        return 1

    cdi = 3.3996 * math.log(total) - 4.3781
    if cdi <= 1:
        return 1
    if cdi <= 2:
        return 2
    return min(12, math.floor(cdi + 0.5))


def compute_intensity(answers: dict[str, Any]) -> Intensity:
    """Compute the Modified Mercalli intensity of a questionnaire.

    Pure function.
    """
    value = compute_cdi(answers)
    return Intensity(value=value, numeral=ROMAN_NUMERALS[value], strength=STRENGTHS[value])
