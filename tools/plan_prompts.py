# tools/plan_prompts.py
"""
FitPlan Forge — Prompt Builder
==============================
Turns a profile plus its computed targets into the instruction text sent
to the generation service. Two variants:
  - standard: full 7-day plan template
  - concise:  same template plus a hard 500-700 word budget

Also builds the summary prompt used by the summarizer stage.
No I/O, never raises.
"""

from typing import List

from tools.profile_validation import UserProfile
from tools.targeting import NutritionTargets, round_half_up

# =============================================================================
# TEMPLATES
# =============================================================================
PLAN_STRUCTURE = """Provide a detailed 7-day plan that includes:
1) Daily WORKOUTS:
   - 45–70 min session outline with warm-up, main sets, and cool-down.
   - For each exercise: movement name, sets × reps, rest time, and simple coaching cue.
   - Provide a no-equipment substitution for each exercise when possible.
   - Include 1–2 progression ideas for the week.
2) Daily DIET:
   - 3 meals + 2 snacks per day (or culturally appropriate pattern) with portion sizes.
   - Per-day macro breakdown (g protein/carbs/fats) that matches the personalized targets above.
   - Give at least one substitution per meal to handle dietary restrictions.
   - Add 1 quick recipe idea per day with brief steps (3–5 steps).
3) HYDRATION: daily goal and practical tip.
4) REST/RECOVERY: mobility or light activity suggestions where appropriate.
5) SHOPPING LIST: consolidated weekly grocery list grouped by category (protein, carbs, produce, pantry, dairy/alternatives) filtered for any dietary restrictions.
6) SAFETY NOTES: brief and relevant to the user's metrics.

Format clearly with headings per day (Day 1 … Day 7), then subsections: Workouts, Diet (with Meals/Snacks), Hydration, Recovery. Keep within ~800 words total.
Be concise but descriptive so the user can follow the plan without ambiguity."""

CONCISE_SUFFIX = (
    "CONCISE MODE: Keep the entire 7-day plan within 500–700 words total. "
    "Use short bullet points. Avoid long recipes; give one-liner tips instead. "
    "If needed, prioritize clarity over volume."
)

SUMMARY_INSTRUCTIONS = (
    "Summarize the following 7-day fitness & diet plan into 6-8 short bullet points. "
    "Include: goals, daily calories & macros, weekly workout focus, dietary "
    "highlights/substitutions, hydration, recovery, safety notes. Keep it under 120 words."
)


# =============================================================================
# BUILDERS
# =============================================================================
def _profile_lines(profile: UserProfile) -> List[str]:
    lines = [
        f"- Age: {profile.echo('age')}",
        f"- Biological Sex: {profile.biological_sex}",
        f"- Height: {profile.echo('height')} cm",
        f"- Weight: {profile.echo('weight')} kg",
        f"- Fitness Experience: {profile.fitness_experience}",
        f"- Dietary Restrictions: {profile.dietary_restrictions or 'None'}",
        f"- Fitness Goals: {profile.fitness_goals}",
    ]
    # Optional health metrics only when supplied
    if profile.oxygen_saturation:
        lines.append(f"- Oxygen Saturation: {profile.oxygen_saturation}%")
    if profile.blood_pressure:
        lines.append(f"- Blood Pressure: {profile.blood_pressure}")
    if profile.water_intake:
        lines.append(f"- Daily Water Intake: {profile.water_intake}L")
    if profile.calorie_intake:
        lines.append(f"- Daily Calorie Intake: {profile.calorie_intake} kcal")
    return lines


def _target_lines(targets: NutritionTargets) -> List[str]:
    adjustment_pct = round_half_up(targets.goal_adjustment * 100)
    return [
        "PERSONALIZED TARGETS (adhere strictly):",
        f"- Daily Calories: {targets.target_calories} kcal "
        f"(based on BMR {round_half_up(targets.bmr)} and TDEE {targets.tdee} "
        f"with goal adjustment {adjustment_pct}%)",
        f"- Macros per day: Protein {targets.protein_g} g, "
        f"Carbs {targets.carbs_g} g, Fats {targets.fat_g} g",
    ]


def build_plan_prompt(profile: UserProfile, targets: NutritionTargets) -> str:
    """
    Build the standard plan prompt.

    Args:
        profile: Validated user profile. Age, height and weight are echoed
                 as the caller sent them, not as coerced for the math.
        targets: Computed nutrition targets the plan must match.

    Returns:
        A single instruction block: profile, labeled targets, plan structure.
    """
    sections = [
        "Create a personalized 7-day fitness and diet plan based on the following "
        "user information (be concise; hard limit ~800 words total):",
        "\n".join(_profile_lines(profile)),
        "",
        "\n".join(_target_lines(targets)),
        "",
        PLAN_STRUCTURE,
    ]
    return "\n".join(sections)


def build_concise_prompt(profile: UserProfile, targets: NutritionTargets) -> str:
    """Standard prompt plus an explicit word budget and bullet-dense instruction."""
    return f"{build_plan_prompt(profile, targets)}\n\n{CONCISE_SUFFIX}"


def build_summary_prompt(plan_text: str) -> str:
    return f"{SUMMARY_INSTRUCTIONS}\n\nPLAN:\n{plan_text}"
