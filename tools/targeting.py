# tools/targeting.py
"""
FitPlan Forge — Nutrition Targeting Engine
==========================================
Pure, deterministic calculation: profile -> daily nutrition targets.

  1. BMR via Mifflin-St Jeor
  2. TDEE = BMR x activity multiplier (from fitness experience)
  3. Calorie target = TDEE x (1 + goal adjustment), floored at 1200 kcal
  4. Protein / fat from bodyweight, carbs fill the remaining calories

Free-form experience and goal strings are classified with ordered
first-match-wins tables so the tie-break order can be inspected and tested.
No I/O, no exceptions for business conditions.
"""

import math
from dataclasses import dataclass, asdict
from typing import Dict, Any, Tuple, NamedTuple, Sequence

from tools.profile_validation import UserProfile

# =============================================================================
# CONSTANTS
# =============================================================================
TARGETING_CONFIG = {
    "calorie_floor": 1200,
    "fat_per_kg": 0.8,
    "default_activity_multiplier": 1.5,
    "default_goal_adjustment": 0.0,
    "default_protein_per_kg": 1.6,
}

MACRO_CALORIES = {
    "protein": 4,
    "carbs": 4,
    "fat": 9,
}


class ClassificationRule(NamedTuple):
    """
    One row of a first-match-wins table.

    `any_of` is a tuple of alternatives; an alternative matches when every
    substring in it occurs in the lower-cased text.
    """
    label: str
    any_of: Tuple[Tuple[str, ...], ...]
    value: float


# Checked top to bottom; first match wins
ACTIVITY_MULTIPLIERS: Tuple[ClassificationRule, ...] = (
    ClassificationRule("expert", (("expert",), ("5+",)), 1.9),
    ClassificationRule("advanced", (("advanced",), ("2+",)), 1.725),
    ClassificationRule("intermediate", (("intermediate",),), 1.55),
    ClassificationRule("beginner", (("beginner",), ("0-6",)), 1.375),
)

GOAL_ADJUSTMENTS: Tuple[ClassificationRule, ...] = (
    ClassificationRule("weight_loss", (("weight", "loss"),), -0.20),
    ClassificationRule("muscle_gain", (("muscle",), ("gain",), ("strength",)), 0.12),
    ClassificationRule("endurance", (("endurance",),), 0.05),
    ClassificationRule("rehab", (("rehab",),), -0.05),
)

PROTEIN_PER_KG: Tuple[ClassificationRule, ...] = (
    ClassificationRule("loss", (("loss",),), 2.0),
    ClassificationRule("muscle_strength", (("muscle",), ("strength",)), 1.8),
)


# =============================================================================
# RESULT TYPE
# =============================================================================
@dataclass(frozen=True)
class NutritionTargets:
    """Daily targets derived from one UserProfile. Never mutated."""
    bmr: float
    tdee: int
    target_calories: int
    protein_g: int
    carbs_g: int
    fat_g: int
    activity_multiplier: float
    goal_adjustment: float
    raw_target_calories: int
    floor_applied: bool

    @property
    def macro_calories(self) -> int:
        return (
            self.protein_g * MACRO_CALORIES["protein"]
            + self.carbs_g * MACRO_CALORIES["carbs"]
            + self.fat_g * MACRO_CALORIES["fat"]
        )

    @property
    def macro_line(self) -> str:
        return f"P{self.protein_g}/C{self.carbs_g}/F{self.fat_g}"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {
            "bmr": data["bmr"],
            "tdee": data["tdee"],
            "targetCalories": data["target_calories"],
            "proteinG": data["protein_g"],
            "carbsG": data["carbs_g"],
            "fatG": data["fat_g"],
            "activityMultiplier": data["activity_multiplier"],
            "goalAdjustment": data["goal_adjustment"],
            "rawTargetCalories": data["raw_target_calories"],
            "floorApplied": data["floor_applied"],
        }


# =============================================================================
# HELPERS
# =============================================================================
def round_half_up(value: float) -> int:
    """Round .5 upward (2.5 -> 3, -2.5 -> -2), unlike Python's banker's round()."""
    if not math.isfinite(value):
        return 0
    return int(math.floor(value + 0.5))


def classify(text: str, table: Sequence[ClassificationRule], default: float) -> Tuple[str, float]:
    """Return (label, value) of the first rule matching text, else ('default', default)."""
    lowered = (text or "").lower()
    for rule in table:
        for alternative in rule.any_of:
            if all(token in lowered for token in alternative):
                return rule.label, rule.value
    return "default", default


def mifflin_st_jeor(sex: str, weight_kg: float, height_cm: float, age: float) -> float:
    """Basal metabolic rate in kcal/day. Anything other than 'male' uses the female constant."""
    base = 10 * weight_kg + 6.25 * height_cm - 5 * age
    if (sex or "").lower() == "male":
        return base + 5
    return base - 161


def activity_multiplier(experience: str) -> float:
    return classify(experience, ACTIVITY_MULTIPLIERS, TARGETING_CONFIG["default_activity_multiplier"])[1]


def goal_adjustment(goal: str) -> float:
    return classify(goal, GOAL_ADJUSTMENTS, TARGETING_CONFIG["default_goal_adjustment"])[1]


def protein_per_kg(goal: str) -> float:
    return classify(goal, PROTEIN_PER_KG, TARGETING_CONFIG["default_protein_per_kg"])[1]


def calculate_macros(weight_kg: float, target_calories: int, goal: str) -> Dict[str, int]:
    """
    Split a calorie target into macro grams.

    Carbs take whatever calories protein and fat leave over, floored at 0.
    When the floor kicks in the macros no longer sum to target_calories.
    """
    protein_g = round_half_up(protein_per_kg(goal) * weight_kg)
    fat_g = round_half_up(TARGETING_CONFIG["fat_per_kg"] * weight_kg)
    remaining = target_calories - protein_g * MACRO_CALORIES["protein"] - fat_g * MACRO_CALORIES["fat"]
    carbs_g = max(0, round_half_up(remaining / MACRO_CALORIES["carbs"]))
    return {"protein_g": protein_g, "fat_g": fat_g, "carbs_g": carbs_g}


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================
def compute_targets(profile: UserProfile) -> NutritionTargets:
    """
    Compute daily nutrition targets for a profile.

    Macros are split against the floored calorie target, i.e. the same
    number reported as target_calories. The unfloored value is kept in
    raw_target_calories.

    Example:
        >>> p = UserProfile(age=30, biologicalSex="male", height=180, weight=80,
        ...                 fitnessExperience="intermediate", fitnessGoals="weight loss")
        >>> t = compute_targets(p)
        >>> (t.tdee, t.target_calories, t.protein_g, t.fat_g, t.carbs_g)
        (2759, 2207, 160, 64, 248)
    """
    bmr = mifflin_st_jeor(profile.sex_key, profile.weight_kg, profile.height_cm, profile.age)
    multiplier = activity_multiplier(profile.fitness_experience)
    tdee = round_half_up(bmr * multiplier)

    adjustment = goal_adjustment(profile.fitness_goals)
    raw_target = round_half_up(tdee * (1 + adjustment))
    target_calories = max(TARGETING_CONFIG["calorie_floor"], raw_target)

    macros = calculate_macros(profile.weight_kg, target_calories, profile.fitness_goals)

    return NutritionTargets(
        bmr=bmr,
        tdee=tdee,
        target_calories=target_calories,
        protein_g=macros["protein_g"],
        carbs_g=macros["carbs_g"],
        fat_g=macros["fat_g"],
        activity_multiplier=multiplier,
        goal_adjustment=adjustment,
        raw_target_calories=raw_target,
        floor_applied=target_calories != raw_target,
    )
