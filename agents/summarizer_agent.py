# agents/summarizer_agent.py
"""
FitPlan Forge — Plan Summarizer
===============================
Second stage after a plan exists: asks the model for a 6-8 bullet
condensed version under its own short timeout. Any failure (timeout,
HTTP error, empty text, misbehaving transport) drops to the heuristic
key-points summary, so the caller always gets a non-empty summary and
never an exception.
"""

from typing import Dict, Any, Optional

from tools.fallback_plans import FallbackStrategy, build_heuristic_summary
from tools.gemini_transport import GenerationRequest, call_service
from tools.plan_prompts import build_summary_prompt
from tools.profile_validation import UserProfile
from tools.targeting import NutritionTargets

# =============================================================================
# CONFIGURATION
# =============================================================================
SUMMARY_CONFIG = {
    "timeout_s": 8.0,
    "generation": {
        "max_output_tokens": 220,
        "temperature": 0.4,
    },
}


class PlanSummarizer:
    """Condenses a plan text; falls back to a heuristic summary on any failure."""

    def __init__(
        self,
        transport: Any,
        fallback: FallbackStrategy = build_heuristic_summary,
        config: Optional[Dict[str, Any]] = None,
    ):
        self.transport = transport
        self.fallback = fallback
        self.config = config or SUMMARY_CONFIG
        self.used_fallback = False

    def build_request(self, plan_text: str) -> GenerationRequest:
        return GenerationRequest.from_prompt(
            build_summary_prompt(plan_text), **self.config["generation"]
        )

    async def summarize(self, plan_text: str, profile: UserProfile, targets: NutritionTargets) -> str:
        """
        Summarize plan_text into short bullets.

        Args:
            plan_text: Plan from the model or from the offline fallback.
            profile: Used only by the heuristic fallback.
            targets: Used only by the heuristic fallback.

        Returns:
            Model summary text, or the heuristic key-points summary.
        """
        outcome = await call_service(
            self.transport, self.build_request(plan_text), self.config["timeout_s"]
        )
        if outcome.ok and outcome.text.strip():
            self.used_fallback = False
            return outcome.text

        reason = outcome.to_error() if not outcome.ok else "blank summary text"
        print(f"⚠️ Summary failed: {reason}. Using heuristic summary...")
        self.used_fallback = True
        return self.fallback(profile, targets)
