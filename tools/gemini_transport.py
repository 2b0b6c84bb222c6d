# tools/gemini_transport.py
"""
FitPlan Forge — Gemini Transport
================================
One cancellable call to the Gemini generateContent endpoint.

`send(request, timeout_s)` races the request against a timer. When the
timer wins the in-flight call is cancelled and a Timeout outcome comes
back. Expected failures are never raised; every call yields exactly one
tagged outcome:

    Success(text) | Timeout | HttpError(status, body) | EmptyResponse

Wire contract (request):
    {"contents": [{"role": "user"|"model", "parts": [{"text": ...}]}],
     "generationConfig": {"maxOutputTokens", "temperature", "topP"}}
Wire contract (response):
    {"candidates": [{"content": {"parts": [{"text": ...}, ...]}}]}
"""

import asyncio
import os
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Union

from dotenv import load_dotenv
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from tools.plan_errors import (
    ConfigurationError,
    EmptyResponseError,
    GenerationError,
    UpstreamHttpError,
    UpstreamTimeout,
)

# =============================================================================
# CONFIGURATION
# =============================================================================
load_dotenv()

GEMINI_CONFIG = {
    "model": os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
    "api_version": os.getenv("GEMINI_API_VERSION", "v1beta"),
}


def load_api_key() -> str:
    """Read the service credential. Raises ConfigurationError when unset."""
    api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
    if not api_key:
        raise ConfigurationError("Missing GEMINI_API_KEY")
    return api_key


# =============================================================================
# REQUEST
# =============================================================================
@dataclass(frozen=True)
class GenerationRequest:
    """Body of one generateContent call."""
    contents: List[Dict[str, Any]]
    max_output_tokens: int
    temperature: float
    top_p: Optional[float] = None

    @classmethod
    def from_prompt(cls, prompt: str, **generation_config: Any) -> "GenerationRequest":
        return cls(contents=[user_turn(prompt)], **generation_config)

    def to_payload(self) -> Dict[str, Any]:
        """JSON body exactly as it goes over the wire."""
        config: Dict[str, Any] = {
            "maxOutputTokens": self.max_output_tokens,
            "temperature": self.temperature,
        }
        if self.top_p is not None:
            config["topP"] = self.top_p
        return {"contents": self.contents, "generationConfig": config}

    # SDK types accept the camelCase wire names, so both views come from one payload
    def to_sdk_contents(self) -> List[genai_types.Content]:
        return [genai_types.Content.model_validate(turn) for turn in self.to_payload()["contents"]]

    def to_sdk_config(self) -> genai_types.GenerateContentConfig:
        return genai_types.GenerateContentConfig.model_validate(self.to_payload()["generationConfig"])


def user_turn(text: str) -> Dict[str, Any]:
    return {"role": "user", "parts": [{"text": text}]}


def model_turn(text: str) -> Dict[str, Any]:
    return {"role": "model", "parts": [{"text": text}]}


# =============================================================================
# OUTCOMES
# =============================================================================
@dataclass(frozen=True)
class Success:
    text: str
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Timeout:
    timeout_s: float
    ok: bool = field(default=False, init=False)

    def to_error(self) -> GenerationError:
        return UpstreamTimeout(self.timeout_s)


@dataclass(frozen=True)
class HttpError:
    status: int
    body: str = ""
    ok: bool = field(default=False, init=False)

    def to_error(self) -> GenerationError:
        return UpstreamHttpError(self.status, self.body)


@dataclass(frozen=True)
class EmptyResponse:
    raw: str = ""
    ok: bool = field(default=False, init=False)

    def to_error(self) -> GenerationError:
        return EmptyResponseError(self.raw)


Outcome = Union[Success, Timeout, HttpError, EmptyResponse]


def extract_candidate_text(data: Any) -> str:
    """
    Concatenate every text fragment of the first candidate.

    Accepts the wire JSON (or the SDK response dumped to a dict). Any
    shape deviation yields "".
    """
    if not isinstance(data, dict):
        return ""
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    first = candidates[0]
    content = first.get("content") if isinstance(first, dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""

    fragments = []
    for part in parts:
        if isinstance(part, str):
            fragments.append(part)
        elif isinstance(part, dict) and isinstance(part.get("text"), str):
            fragments.append(part["text"])
    return "".join(fragments)


# =============================================================================
# TRANSPORT
# =============================================================================
class GeminiTransport:
    """Sends GenerationRequests through the google-genai async client."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        api_version: Optional[str] = None,
        client: Optional[genai.Client] = None,
    ):
        self.model = model or GEMINI_CONFIG["model"]
        self.api_version = api_version or GEMINI_CONFIG["api_version"]
        if client is None:
            client = genai.Client(
                api_key=api_key or load_api_key(),
                http_options=genai_types.HttpOptions(api_version=self.api_version),
            )
        self.client = client

    async def send(self, request: GenerationRequest, timeout_s: float) -> Outcome:
        """Issue one call; cancel it if it is still running after timeout_s seconds."""
        call = self.client.aio.models.generate_content(
            model=self.model,
            contents=request.to_sdk_contents(),
            config=request.to_sdk_config(),
        )
        try:
            response = await asyncio.wait_for(call, timeout=timeout_s)
        except asyncio.TimeoutError:
            print(f"⚠️ Gemini: call cancelled after {timeout_s}s")
            return Timeout(timeout_s)
        except genai_errors.APIError as e:
            return HttpError(status=e.code or 0, body=e.message or str(e))
        except Exception as e:
            # Network failures and anything else without an HTTP status
            print(f"⚠️ Gemini: transport error: {e}")
            return HttpError(status=0, body=str(e))

        data = response.model_dump(mode="json", exclude_none=True)
        text = extract_candidate_text(data)
        if not text:
            return EmptyResponse(raw=str(data)[:400])
        return Success(text)


def build_transport() -> GeminiTransport:
    """Transport for the configured credential. Raises ConfigurationError when unset."""
    return GeminiTransport(api_key=load_api_key())


async def call_service(transport: Any, request: GenerationRequest, timeout_s: float) -> Outcome:
    """
    transport.send() with the no-raise guarantee enforced.

    Transports are expected to return outcomes; one that raises anyway is
    reported as HttpError(0, message) so callers only ever branch on outcomes.
    """
    try:
        return await transport.send(request, timeout_s)
    except Exception as e:
        print(f"⚠️ Gemini: transport raised instead of returning an outcome: {e}")
        return HttpError(status=0, body=str(e))
