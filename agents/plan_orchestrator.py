# agents/plan_orchestrator.py
"""
FitPlan Forge — Plan Generation Orchestrator
============================================
Coordinates one plan request end to end:

    Validation -> Targeting -> Prompt -> Primary call -> [Fallback] -> Summary

Mode is decided once, before the orchestrator is built:
  - CONCISE   local/constrained deployment or caller asked for it.
              Smaller token budget, 15s timeout, offline fallback plan on
              any failure (never raises).
  - STANDARD  larger token budget, 12s timeout, no fallback: failures
              propagate as GenerationError.

Each stage calls the service at most once. No retries.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, List, Optional

from pydantic import BaseModel, ConfigDict

from agents.summarizer_agent import PlanSummarizer
from tools.fallback_plans import FallbackStrategy, build_fallback_plan
from tools.gemini_transport import GenerationRequest, call_service
from tools.plan_prompts import build_concise_prompt, build_plan_prompt
from tools.profile_validation import UserProfile, validate_profile_payload
from tools.targeting import NutritionTargets, compute_targets

# =============================================================================
# CONFIGURATION
# =============================================================================
PLAN_CONFIG = {
    "standard": {
        "timeout_s": 12.0,
        "generation": {"max_output_tokens": 1536, "temperature": 0.7, "top_p": 0.95},
    },
    "concise": {
        "timeout_s": 15.0,
        "generation": {"max_output_tokens": 900, "temperature": 0.6, "top_p": 0.9},
    },
}

# Any of these set to a truthy value marks a local/constrained deployment
LOCAL_CONTEXT_ENV_VARS = ("NETLIFY_DEV", "NETLIFY_LOCAL", "FITPLAN_LOCAL")

FALSY_FLAGS = {"", "0", "false", "no", "off"}

FALLBACK_NOTE_PREFIX = "Returned server fallback due to generation failure: "


class GenerationMode(Enum):
    STANDARD = "standard"
    CONCISE = "concise"


class PlanState(Enum):
    START = "start"
    MODE_SELECTED = "mode_selected"
    PRIMARY_CALL_IN_FLIGHT = "primary_call_in_flight"
    PRIMARY_SUCCEEDED = "primary_succeeded"
    PRIMARY_FAILED = "primary_failed"
    FALLBACK_SYNTHESIZED = "fallback_synthesized"
    DONE = "done"


def is_truthy_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in FALSY_FLAGS
    return bool(value)


def is_local_context(environ: Optional[Dict[str, str]] = None) -> bool:
    """True when running in a local or otherwise constrained deployment."""
    environ = os.environ if environ is None else environ
    return any(is_truthy_flag(environ.get(name, "")) for name in LOCAL_CONTEXT_ENV_VARS)


def resolve_mode(concise_requested: bool, local_context: bool) -> GenerationMode:
    if local_context or concise_requested:
        return GenerationMode.CONCISE
    return GenerationMode.STANDARD


# =============================================================================
# RESULT TYPES
# =============================================================================
@dataclass(frozen=True)
class PlanRequest:
    """Validated profile plus the generation mode chosen for it."""
    profile: UserProfile
    mode: GenerationMode

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]], local_context: bool = False) -> "PlanRequest":
        """Validate the raw body and pick the mode. Raises ValidationError."""
        payload = validate_profile_payload(payload)
        concise_requested = is_truthy_flag(payload.get("concise", False))
        return cls(
            profile=UserProfile.from_payload(payload),
            mode=resolve_mode(concise_requested, local_context),
        )


@dataclass(frozen=True)
class PlanDraft:
    """Plan text obtained by the primary stage, from the model or the fallback."""
    text: str
    note: Optional[str] = None

    @property
    def used_fallback(self) -> bool:
        return self.note is not None


class PlanResult(BaseModel):
    """Response envelope for the plan endpoint. Serialized once, never mutated."""
    model_config = ConfigDict(frozen=True)

    success: bool
    plan: Optional[str] = None
    summary: Optional[str] = None
    note: Optional[str] = None
    error: Optional[str] = None
    details: Optional[str] = None

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


# =============================================================================
# ORCHESTRATOR
# =============================================================================
class PlanOrchestrator:
    """
    Per-request coordinator for the primary generation call.

    Build one per request; `states` records the path taken through
    START -> MODE_SELECTED -> PRIMARY_CALL_IN_FLIGHT -> SUCCEEDED|FAILED
    -> [FALLBACK_SYNTHESIZED] -> DONE.
    """

    def __init__(
        self,
        transport: Any,
        mode: GenerationMode,
        plan_fallback: FallbackStrategy = build_fallback_plan,
        config: Optional[Dict[str, Any]] = None,
    ):
        self.transport = transport
        self.mode = mode
        self.plan_fallback = plan_fallback
        self.config = (config or PLAN_CONFIG)[mode.value]
        self.states: List[PlanState] = [PlanState.START]

    @property
    def state(self) -> PlanState:
        return self.states[-1]

    def _enter(self, state: PlanState) -> None:
        self.states.append(state)

    def build_request(self, profile: UserProfile, targets: NutritionTargets) -> GenerationRequest:
        if self.mode is GenerationMode.CONCISE:
            prompt = build_concise_prompt(profile, targets)
        else:
            prompt = build_plan_prompt(profile, targets)
        return GenerationRequest.from_prompt(prompt, **self.config["generation"])

    async def generate(self, profile: UserProfile, targets: NutritionTargets) -> PlanDraft:
        """
        Run the primary stage.

        Returns:
            PlanDraft with the model text, or (concise mode only) the offline
            fallback plan and a note naming the triggering error.

        Raises:
            GenerationError: standard mode, when the call times out, returns a
                             non-2xx status, or yields no text.
        """
        self._enter(PlanState.MODE_SELECTED)
        request = self.build_request(profile, targets)

        self._enter(PlanState.PRIMARY_CALL_IN_FLIGHT)
        print(f"🤖 Plan call ({self.mode.value}, {self.config['timeout_s']}s budget)")
        outcome = await call_service(self.transport, request, self.config["timeout_s"])

        if outcome.ok:
            self._enter(PlanState.PRIMARY_SUCCEEDED)
            self._enter(PlanState.DONE)
            print("✅ Plan generated by model")
            return PlanDraft(text=outcome.text)

        self._enter(PlanState.PRIMARY_FAILED)
        error = outcome.to_error()

        if self.mode is GenerationMode.STANDARD:
            self._enter(PlanState.DONE)
            print(f"❌ Plan generation failed: {error}")
            raise error

        print(f"⚠️ Plan generation failed: {error}. Using fallback plan...")
        text = self.plan_fallback(profile, targets)
        self._enter(PlanState.FALLBACK_SYNTHESIZED)
        self._enter(PlanState.DONE)
        return PlanDraft(text=text, note=FALLBACK_NOTE_PREFIX + str(error))


# =============================================================================
# PIPELINE ENTRY POINT
# =============================================================================
async def generate_fitness_plan(
    payload: Optional[Dict[str, Any]],
    transport: Any,
    local_context: bool = False,
    plan_fallback: FallbackStrategy = build_fallback_plan,
    summarizer: Optional[PlanSummarizer] = None,
) -> PlanResult:
    """
    Turn a raw plan request body into a PlanResult.

    Args:
        payload: Decoded JSON body (see the plan endpoint contract).
        transport: Anything with `async send(request, timeout_s) -> Outcome`.
        local_context: Deployment-level switch forcing concise mode.
        plan_fallback: Offline plan builder used in concise mode.
        summarizer: Override for the summary stage (defaults to one on transport).

    Raises:
        ValidationError: required profile fields missing.
        GenerationError: standard mode generation failed.
    """
    plan_request = PlanRequest.from_payload(payload, local_context)
    profile = plan_request.profile
    targets = compute_targets(profile)
    print(
        f"🧮 Targets: {targets.target_calories} kcal ({targets.macro_line})"
        + (" [calorie floor applied]" if targets.floor_applied else "")
    )
    print(f"   Detail: {targets.to_dict()}")

    orchestrator = PlanOrchestrator(transport, plan_request.mode, plan_fallback=plan_fallback)
    draft = await orchestrator.generate(profile, targets)

    summarizer = summarizer or PlanSummarizer(transport)
    summary = await summarizer.summarize(draft.text, profile, targets)

    return PlanResult(success=True, plan=draft.text, summary=summary, note=draft.note)

