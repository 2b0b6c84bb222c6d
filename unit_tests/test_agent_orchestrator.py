# unit_tests/test_agent_orchestrator.py
"""
Unit Tests for Plan Generation Orchestrator
===========================================
Run with: python -m pytest unit_tests/test_agent_orchestrator.py -v
"""

import asyncio

import pytest

from agents.plan_orchestrator import (
    FALLBACK_NOTE_PREFIX,
    PLAN_CONFIG,
    GenerationMode,
    PlanOrchestrator,
    PlanRequest,
    PlanState,
    generate_fitness_plan,
    is_local_context,
    resolve_mode,
)
from agents.summarizer_agent import PlanSummarizer
from tools.gemini_transport import EmptyResponse, HttpError, Success, Timeout
from tools.plan_errors import (
    EmptyResponseError,
    UpstreamHttpError,
    UpstreamTimeout,
    ValidationError,
)
from tools.plan_prompts import CONCISE_SUFFIX
from tools.profile_validation import UserProfile
from tools.targeting import compute_targets


@pytest.fixture
def profile(male_payload):
    return UserProfile.from_payload(male_payload)


@pytest.fixture
def targets(profile):
    return compute_targets(profile)


# =============================================================================
# MODE SELECTION
# =============================================================================

def test_resolve_mode():
    assert resolve_mode(concise_requested=False, local_context=False) is GenerationMode.STANDARD
    assert resolve_mode(concise_requested=True, local_context=False) is GenerationMode.CONCISE
    assert resolve_mode(concise_requested=False, local_context=True) is GenerationMode.CONCISE


def test_is_local_context():
    assert is_local_context({}) is False
    assert is_local_context({"NETLIFY_DEV": "true"}) is True
    assert is_local_context({"NETLIFY_LOCAL": "1"}) is True
    assert is_local_context({"FITPLAN_LOCAL": "yes"}) is True
    assert is_local_context({"NETLIFY_DEV": "false", "NETLIFY_LOCAL": ""}) is False


def test_plan_request_from_payload(male_payload):
    request = PlanRequest.from_payload(male_payload)
    assert request.mode is GenerationMode.STANDARD
    assert request.profile.weight_kg == 80

    male_payload["concise"] = 1
    assert PlanRequest.from_payload(male_payload).mode is GenerationMode.CONCISE
    male_payload["concise"] = False
    assert PlanRequest.from_payload(male_payload, local_context=True).mode is GenerationMode.CONCISE


# =============================================================================
# ORCHESTRATOR
# =============================================================================

def test_standard_success(profile, targets, scripted_transport):
    transport = scripted_transport(Success("Day 1 ... Day 7"))
    orchestrator = PlanOrchestrator(transport, GenerationMode.STANDARD)
    draft = asyncio.run(orchestrator.generate(profile, targets))

    assert draft.text == "Day 1 ... Day 7"
    assert draft.note is None
    assert not draft.used_fallback
    assert orchestrator.states == [
        PlanState.START,
        PlanState.MODE_SELECTED,
        PlanState.PRIMARY_CALL_IN_FLIGHT,
        PlanState.PRIMARY_SUCCEEDED,
        PlanState.DONE,
    ]

    request, timeout_s = transport.calls[0]
    assert timeout_s == PLAN_CONFIG["standard"]["timeout_s"] == 12.0
    assert request.to_payload()["generationConfig"] == {
        "maxOutputTokens": 1536, "temperature": 0.7, "topP": 0.95,
    }
    assert CONCISE_SUFFIX not in transport.prompts[0]


@pytest.mark.parametrize("outcome, error_type", [
    (Timeout(12.0), UpstreamTimeout),
    (HttpError(503, "overloaded"), UpstreamHttpError),
    (EmptyResponse(), EmptyResponseError),
])
def test_standard_failure_raises(profile, targets, scripted_transport, outcome, error_type):
    orchestrator = PlanOrchestrator(scripted_transport(outcome), GenerationMode.STANDARD)
    with pytest.raises(error_type):
        asyncio.run(orchestrator.generate(profile, targets))
    assert PlanState.FALLBACK_SYNTHESIZED not in orchestrator.states
    assert orchestrator.states[-2:] == [PlanState.PRIMARY_FAILED, PlanState.DONE]


def test_concise_success(profile, targets, scripted_transport):
    transport = scripted_transport(Success("short plan"))
    orchestrator = PlanOrchestrator(transport, GenerationMode.CONCISE)
    draft = asyncio.run(orchestrator.generate(profile, targets))

    assert draft.text == "short plan"
    assert draft.note is None
    request, timeout_s = transport.calls[0]
    assert timeout_s == 15.0
    assert request.max_output_tokens == 900
    assert transport.prompts[0].endswith(CONCISE_SUFFIX)


@pytest.mark.parametrize("outcome, message", [
    (Timeout(15.0), "Request timed out after 15000ms"),
    (HttpError(429, "quota"), "HTTP 429: quota"),
    (EmptyResponse(), "Empty response from model"),
])
def test_concise_failure_synthesizes_fallback(profile, targets, scripted_transport, outcome, message):
    print("\n" + "="*60)
    print(f"TEST: Concise fallback on {type(outcome).__name__}")
    print("="*60)

    orchestrator = PlanOrchestrator(scripted_transport(outcome), GenerationMode.CONCISE)
    draft = asyncio.run(orchestrator.generate(profile, targets))

    assert draft.used_fallback
    assert draft.note == FALLBACK_NOTE_PREFIX + message
    assert "Day 7" in draft.text
    assert "2207 kcal" in draft.text
    assert orchestrator.states[-3:] == [
        PlanState.PRIMARY_FAILED, PlanState.FALLBACK_SYNTHESIZED, PlanState.DONE,
    ]
    print(f"✅ Fallback note: {draft.note}")


def test_concise_fallback_when_transport_raises(profile, targets, scripted_transport):
    orchestrator = PlanOrchestrator(scripted_transport(RuntimeError("socket closed")), GenerationMode.CONCISE)
    draft = asyncio.run(orchestrator.generate(profile, targets))
    assert draft.note == FALLBACK_NOTE_PREFIX + "HTTP 0: socket closed"


def test_custom_fallback_strategy(profile, targets, scripted_transport):
    def tiny_plan(p, t):
        return f"Eat {t.target_calories} kcal, move daily."

    orchestrator = PlanOrchestrator(scripted_transport(Timeout(15.0)), GenerationMode.CONCISE,
                                    plan_fallback=tiny_plan)
    draft = asyncio.run(orchestrator.generate(profile, targets))
    assert draft.text == "Eat 2207 kcal, move daily."


def test_single_call_no_retry(profile, targets, scripted_transport):
    transport = scripted_transport(HttpError(500, "x"), Success("would be a retry"))
    asyncio.run(PlanOrchestrator(transport, GenerationMode.CONCISE).generate(profile, targets))
    assert len(transport.calls) == 1


def test_slow_service_times_out_into_fallback(profile, targets, slow_transport):
    transport = slow_transport(delay_s=5.0)
    draft = asyncio.run(PlanOrchestrator(transport, GenerationMode.CONCISE).generate(profile, targets))
    assert draft.note.startswith(FALLBACK_NOTE_PREFIX + "Request timed out")


# =============================================================================
# PIPELINE
# =============================================================================

def test_pipeline_standard_success(male_payload, scripted_transport):
    transport = scripted_transport(Success("THE PLAN"), Success("- bullet summary"))
    result = asyncio.run(generate_fitness_plan(male_payload, transport))

    assert result.to_response() == {"success": True, "plan": "THE PLAN", "summary": "- bullet summary"}
    assert len(transport.calls) == 2
    assert "PLAN:\nTHE PLAN" in transport.prompts[1]
    assert transport.calls[1][1] == 8.0


def test_pipeline_concise_flag(male_payload, scripted_transport):
    male_payload["concise"] = True
    transport = scripted_transport(Success("short"), Success("sum"))
    asyncio.run(generate_fitness_plan(male_payload, transport))
    assert transport.prompts[0].endswith(CONCISE_SUFFIX)


def test_pipeline_concise_flag_string_false(male_payload, scripted_transport):
    male_payload["concise"] = "false"
    transport = scripted_transport(Success("full"), Success("sum"))
    asyncio.run(generate_fitness_plan(male_payload, transport))
    assert not transport.prompts[0].endswith(CONCISE_SUFFIX)


def test_pipeline_local_context_forces_concise(male_payload, scripted_transport):
    transport = scripted_transport(Timeout(15.0))
    result = asyncio.run(generate_fitness_plan(male_payload, transport, local_context=True))

    assert result.success is True
    assert result.note.startswith(FALLBACK_NOTE_PREFIX)
    assert result.plan.startswith("Personalized Targets")
    # Summary call also timed out -> heuristic summary
    assert result.summary.startswith("Key Points")
    assert len(transport.calls) == 2


def test_pipeline_summary_of_fallback_plan(male_payload, scripted_transport):
    transport = scripted_transport(HttpError(500, "down"), Success("- model summary"))
    result = asyncio.run(generate_fitness_plan(male_payload, transport, local_context=True))
    assert result.summary == "- model summary"
    assert "Personalized Targets" in transport.prompts[1]


def test_pipeline_standard_failure_propagates(male_payload, scripted_transport):
    transport = scripted_transport(Timeout(12.0))
    with pytest.raises(UpstreamTimeout):
        asyncio.run(generate_fitness_plan(male_payload, transport))
    # No summary call after a failed standard plan
    assert len(transport.calls) == 1


def test_pipeline_validation_runs_first(scripted_transport):
    transport = scripted_transport()
    with pytest.raises(ValidationError) as exc_info:
        asyncio.run(generate_fitness_plan({"age": 30}, transport))
    assert exc_info.value.details == "biologicalSex, height, weight, fitnessExperience, fitnessGoals"
    assert transport.calls == []


def test_pipeline_custom_summarizer(male_payload, scripted_transport):
    plan_transport = scripted_transport(Success("PLAN"))
    summary_transport = scripted_transport(EmptyResponse())
    summarizer = PlanSummarizer(summary_transport, fallback=lambda p, t: "fallback summary")
    result = asyncio.run(generate_fitness_plan(male_payload, plan_transport, summarizer=summarizer))
    assert result.summary == "fallback summary"
    assert summarizer.used_fallback
    assert len(plan_transport.calls) == 1


def test_pipeline_logs_target_detail(male_payload, scripted_transport, capsys):
    asyncio.run(generate_fitness_plan(male_payload, scripted_transport(Success("P"), Success("S"))))
    out = capsys.readouterr().out
    assert "'targetCalories': 2207" in out
    assert "'floorApplied': False" in out
