# agents/chat_relay.py
"""
FitPlan Forge — Coach Chat Relay
================================
Near-stateless pass-through to the generation service for follow-up
questions about a plan. Grounding context (profile + a truncated plan) goes
in as the first user turn, then prior turns, then the new message.

No nutrition targets, no fallback: a failed call is a failed chat.
"""

from typing import Dict, Any, List, Optional

from pydantic import BaseModel

from tools.gemini_transport import GenerationRequest, call_service, model_turn, user_turn
from tools.plan_errors import MissingMessageError

# =============================================================================
# CONFIGURATION
# =============================================================================
CHAT_CONFIG = {
    "timeout_s": 20.0,
    "max_plan_chars": 4000,
    "truncation_marker": "... [truncated]",
    "generation": {"max_output_tokens": 512, "temperature": 0.6, "top_p": 0.9},
}


class ChatResult(BaseModel):
    success: bool
    reply: str


def _truncate_plan(plan: str, limit: int) -> str:
    if len(plan) > limit:
        return plan[:limit] + CHAT_CONFIG["truncation_marker"]
    return plan


def build_context_text(profile: Optional[Dict[str, Any]], plan: str) -> str:
    """Profile lines and the (possibly truncated) plan, or '' if neither is given."""
    lines: List[str] = []
    if isinstance(profile, dict) and profile:
        lines.append("USER PROFILE:")
        for key, value in profile.items():
            if value is None or value == "":
                continue
            lines.append(f"- {key}: {value}")
    if plan:
        lines.extend(["", "GENERATED PLAN (summary text):"])
        lines.append(_truncate_plan(plan, CHAT_CONFIG["max_plan_chars"]))
    return "\n".join(lines)


def build_chat_contents(
    message: str,
    history: Optional[List[Dict[str, Any]]] = None,
    profile: Optional[Dict[str, Any]] = None,
    plan: str = "",
) -> List[Dict[str, Any]]:
    """
    Assemble the `contents` list for one chat call.

    Turns missing a role or content are skipped. Role "model" is kept,
    every other role is sent as "user".
    """
    contents: List[Dict[str, Any]] = []

    context = build_context_text(profile, plan)
    if context:
        contents.append(user_turn(context))

    for turn in history or []:
        if not isinstance(turn, dict) or not turn.get("role") or not turn.get("content"):
            continue
        text = str(turn["content"])
        contents.append(model_turn(text) if turn["role"] == "model" else user_turn(text))

    contents.append(user_turn(message))
    return contents


async def relay_chat(payload: Optional[Dict[str, Any]], transport: Any) -> ChatResult:
    """
    Forward one chat message to the model.

    Args:
        payload: {message, history?, profile?, plan?}
        transport: Anything with `async send(request, timeout_s) -> Outcome`.

    Raises:
        MissingMessageError: blank or missing message.
        GenerationError: the call timed out, failed, or returned no text.
    """
    payload = payload if isinstance(payload, dict) else {}
    message = str(payload.get("message") or "").strip()
    if not message:
        raise MissingMessageError()

    history = payload.get("history") if isinstance(payload.get("history"), list) else []
    profile = payload.get("profile") if isinstance(payload.get("profile"), dict) else None
    plan = payload.get("plan") if isinstance(payload.get("plan"), str) else ""

    request = GenerationRequest(
        contents=build_chat_contents(message, history, profile, plan),
        **CHAT_CONFIG["generation"],
    )
    print(f"💬 Chat relay: {message[:50]} ({len(history)} prior turns)")
    outcome = await call_service(transport, request, CHAT_CONFIG["timeout_s"])
    if not outcome.ok:
        raise outcome.to_error()
    return ChatResult(success=True, reply=outcome.text)
