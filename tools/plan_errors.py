# tools/plan_errors.py
"""
FitPlan Forge — Error Taxonomy
==============================
Exceptions raised across the plan pipeline and chat relay.

  PlanError
   ├── ValidationError        → 400 (missing/blank required fields)
   ├── ConfigurationError     → 500 (missing service credential)
   └── GenerationError        → absorbed in concise mode, 500 in standard mode
        ├── UpstreamTimeout
        ├── UpstreamHttpError
        └── EmptyResponseError
"""

from typing import List, Optional


class PlanError(Exception):
    """Base class for every error the pipeline raises on purpose."""

    status_code = 500
    public_message = "Failed to generate fitness plan"


class ValidationError(PlanError):
    """One or more required profile fields are missing or blank."""

    status_code = 400
    public_message = "Missing required fields"

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(f"{self.public_message}: {self.details}")

    @property
    def details(self) -> str:
        return ", ".join(self.missing)


class ConfigurationError(PlanError):
    """The generation-service credential is not configured."""

    def __init__(self, message: str = "Missing GEMINI_API_KEY"):
        self.public_message = message
        super().__init__(message)


class GenerationError(PlanError):
    """A single call to the generation service did not yield usable text."""


class UpstreamTimeout(GenerationError):
    def __init__(self, timeout_s: float):
        self.timeout_s = timeout_s
        super().__init__(f"Request timed out after {int(timeout_s * 1000)}ms")


class UpstreamHttpError(GenerationError):
    def __init__(self, status: int, body: Optional[str] = None):
        self.status = status
        self.body = body or ""
        super().__init__(f"HTTP {status}: {self.body}" if self.body else f"HTTP {status}")


class EmptyResponseError(GenerationError):
    def __init__(self, raw: str = ""):
        self.raw = raw
        message = "Empty response from model"
        if raw:
            message += f": {raw[:400]}"
        super().__init__(message)


class MissingMessageError(PlanError):
    """Chat relay request without a message."""

    status_code = 400
    public_message = "Missing required field: message"
