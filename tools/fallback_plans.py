# tools/fallback_plans.py
"""
FitPlan Forge — Offline Fallbacks
=================================
Deterministic, network-free text used when the generation service cannot
deliver:
  - build_fallback_plan():      7 generic daily blocks around the targets
  - build_heuristic_summary():  bullet summary from already-known values

Both share the signature FallbackStrategy(profile, targets) -> str so tests
and callers can swap them freely.
"""

from typing import Callable

from tools.profile_validation import UserProfile
from tools.targeting import NutritionTargets

FallbackStrategy = Callable[[UserProfile, NutritionTargets], str]

FALLBACK_DAYS = 7

DAY_TEMPLATE = """Day {day}
Workouts: 45–60 min mixed (push/pull/legs/cardio). Choose 4–5 moves, 3×8–12 reps, 60–90s rest. No equipment? Do push-ups, squats, lunges, rows (towel/doorframe), planks.
Diet (approx {calories} kcal | {macros}):
- Breakfast: Greek yogurt + berries + oats.
- Lunch: Grain bowl (rice/quinoa), tofu/beans/chicken, veggies, olive oil.
- Snack: Fruit + nuts.
- Dinner: Lean protein, roasted veg, potatoes/rice.
- Snack: Cottage cheese or protein shake.
Hydration: 2–3L water. Recovery: 10 min mobility."""


def build_fallback_plan(profile: UserProfile, targets: NutritionTargets) -> str:
    """
    Compose a usable 7-day plan without calling the model.

    Example:
        >>> text = build_fallback_plan(profile, targets)
        >>> text.splitlines()[0]
        'Personalized Targets'
    """
    header = "\n".join([
        "Personalized Targets",
        f"- Calories: {targets.target_calories} kcal",
        f"- Macros: Protein {targets.protein_g} g, Carbs {targets.carbs_g} g, Fats {targets.fat_g} g",
        f"Dietary Restrictions: {profile.dietary_restrictions or 'None'}",
    ])
    days = [
        DAY_TEMPLATE.format(day=day, calories=targets.target_calories, macros=targets.macro_line)
        for day in range(1, FALLBACK_DAYS + 1)
    ]
    return header + "\n\n" + "\n\n".join(days) + "\n"


def build_heuristic_summary(profile: UserProfile, targets: NutritionTargets) -> str:
    """Key-points summary built only from the targets and the profile. Never empty."""
    return "\n".join([
        "Key Points",
        f"- Daily target: {targets.target_calories} kcal | Macros {targets.macro_line}",
        f"- Goal: {profile.fitness_goals}",
        f"- Experience: {profile.fitness_experience}",
        f"- Diet: {profile.dietary_restrictions or 'No major restrictions'}",
        "- Hydration: 2–3L/day; Recovery: light mobility daily",
        "- Safety: respect pain, scale loads, consult a professional for BP/SpO2 concerns",
    ])
