"""
FitPlan Forge — FastAPI Backend
"""

import sys
from functools import lru_cache
from pathlib import Path
from datetime import datetime
from typing import Optional, Dict, Any

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from fastapi import FastAPI, Depends, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from dotenv import load_dotenv
load_dotenv()

from agents.chat_relay import relay_chat
from agents.plan_orchestrator import (
    GenerationMode,
    PlanResult,
    generate_fitness_plan,
    is_local_context,
)
from tools.gemini_transport import GEMINI_CONFIG, build_transport, load_api_key
from tools.plan_errors import ConfigurationError, GenerationError, PlanError

APP_VERSION = "1.0.0"


# =============================================================================
# PYDANTIC MODELS
# =============================================================================
class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    details: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    system: str
    components: Dict[str, bool]
    mode: str
    model: str
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())


# =============================================================================
# APP SETUP
# =============================================================================
app = FastAPI(
    title="FitPlan Forge API",
    version=APP_VERSION,
    description="Personalized 7-day fitness & nutrition plan generator"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================
def error_response(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def read_json_body(request: Request) -> Dict[str, Any]:
    """Decode the body as a JSON object. Empty, malformed or non-object bodies become {}."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        data = await request.json()
    except ValueError:
        print("⚠️ Request body is not valid JSON; treating as empty")
        return {}
    return data if isinstance(data, dict) else {}


@lru_cache(maxsize=1)
def get_transport():
    """
    Process-wide generation-service transport.

    Built on first use so the credential is read once. A missing credential
    raises ConfigurationError and nothing is cached, so the next request retries.
    """
    return build_transport()


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================
@app.exception_handler(StarletteHTTPException)
async def method_not_allowed_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 405:
        return error_response(405, "Method Not Allowed")
    return await http_exception_handler(request, exc)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    print(f"❌ Configuration error: {exc}")
    return error_response(exc.status_code, exc.public_message)


@app.exception_handler(PlanError)
async def plan_error_handler(request: Request, exc: PlanError):
    return error_response(exc.status_code, exc.public_message, getattr(exc, "details", None))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    print(f"❌ Unhandled error on {request.url.path}: {exc}")
    return error_response(500, "Internal server error", str(exc))


# =============================================================================
# ENDPOINTS
# =============================================================================
@app.get("/")
async def root():
    return {
        "message": "FitPlan Forge API is running",
        "version": APP_VERSION,
        "docs": "/docs"
    }


@app.get("/api/v1/health", response_model=HealthResponse)
async def health():
    """Report component readiness without touching the generation service."""
    try:
        load_api_key()
        credential_ready = True
    except ConfigurationError:
        credential_ready = False

    mode = GenerationMode.CONCISE if is_local_context() else GenerationMode.STANDARD
    return HealthResponse(
        status="healthy" if credential_ready else "degraded",
        system="FitPlan Forge",
        components={
            "targeting": True,
            "gemini_credential": credential_ready,
        },
        mode=mode.value,
        model=GEMINI_CONFIG["model"],
    )


@app.post("/api/v1/plan/generate", response_model=PlanResult, response_model_exclude_none=True)
@app.post("/.netlify/functions/generate-plan", include_in_schema=False)
async def generate_plan(request: Request, transport=Depends(get_transport)):
    """Generate a personalized 7-day fitness & diet plan plus its summary."""
    payload = await read_json_body(request)
    print(f"\n📥 PLAN REQUEST: goal='{payload.get('fitnessGoals')}', concise={payload.get('concise', False)}")

    try:
        result = await generate_fitness_plan(payload, transport, local_context=is_local_context())
    except GenerationError as e:
        print(f"❌ Plan Error: {e}")
        return error_response(500, "Failed to generate fitness plan", str(e))

    print(f"📤 Plan ready ({len(result.plan or '')} chars){' [fallback]' if result.note else ''}")
    return JSONResponse(status_code=200, content=result.to_response())


@app.post("/api/v1/chat")
@app.post("/.netlify/functions/chat", include_in_schema=False)
async def chat(request: Request, transport=Depends(get_transport)):
    """Relay a coaching question, grounded in the user's profile and plan."""
    payload = await read_json_body(request)

    try:
        result = await relay_chat(payload, transport)
    except GenerationError as e:
        print(f"❌ Chat Error: {e}")
        return error_response(500, "Chat failed", str(e))

    return result.model_dump()


# =============================================================================
# MAIN
# =============================================================================
if __name__ == "__main__":
    print("\n" + "=" * 50)
    print(f"🚀 FITPLAN FORGE API v{APP_VERSION}")
    print("=" * 50)
    print(f"   • Model: {GEMINI_CONFIG['model']} ({GEMINI_CONFIG['api_version']})")
    print(f"   • Mode:  {'concise (local)' if is_local_context() else 'standard'}")
    print("=" * 50)
    print("🔗 API Docs: http://localhost:8000/docs")
    print("=" * 50 + "\n")

    uvicorn.run(app, host="0.0.0.0", port=8000)
