"""
Moderation API Endpoints

POST /v1/moderate - Classify one chat message
POST /v1/moderate/batch - Classify several messages
GET /v1/moderate/providers - Remote tier rate/quota status

Empty or whitespace-only text is not a validation error: it is non-toxic
by definition, so the endpoint stays total like the orchestrator.

Patterns Applied:
- FastAPI router with Pydantic request/response models
- Orchestrator injected via Depends(get_orchestrator)
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from toxicity_service.classifiers.orchestrator import (
    ModerationOrchestratorProtocol,
    ProviderStatus,
)
from toxicity_service.classifiers.redaction import ModeratedMessage, moderate_message

# =============================================================================
# Constants
# =============================================================================

API_PREFIX = "/v1"
MODERATE_TAG = "moderate"
MODERATE_SUMMARY = "Classify a chat message for toxicity"
MODERATE_BATCH_SUMMARY = "Classify multiple chat messages"
PROVIDERS_SUMMARY = "Remote classifier rate/quota status"
MAX_BATCH_SIZE = 100

ERROR_NOT_READY = "Moderation orchestrator not initialized"

DESC_TEXT = "Message text to classify"
DESC_ALLOW_REMOTE = "Set false to restrict classification to cache + lexicon"


# =============================================================================
# Request/Response Models (Pydantic)
# =============================================================================


class ModerateRequest(BaseModel):
    """Request body for single message moderation."""

    text: str = Field(..., description=DESC_TEXT, examples=["hello everyone"])
    allow_remote: bool = Field(default=True, description=DESC_ALLOW_REMOTE)


class ModerateResponse(BaseModel):
    """Verdict plus the text other users should see."""

    is_toxic: bool
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str | None = None
    categories: list[str] = Field(default_factory=list)
    method: str = Field(description="primary-remote, secondary-remote or lexicon")
    display_text: str

    @classmethod
    def from_message(cls, message: ModeratedMessage) -> ModerateResponse:
        verdict = message.verdict
        return cls(
            is_toxic=verdict.is_toxic,
            confidence=verdict.confidence,
            reason=verdict.reason,
            categories=list(verdict.categories),
            method=verdict.method.value,
            display_text=message.display_text,
        )


class ModerateBatchRequest(BaseModel):
    """Request body for batch moderation."""

    texts: list[str] = Field(..., max_length=MAX_BATCH_SIZE)
    allow_remote: bool = Field(default=True, description=DESC_ALLOW_REMOTE)


class ModerateBatchResponse(BaseModel):
    results: list[ModerateResponse]


class ProviderStatusResponse(BaseModel):
    """Governor state for one remote tier."""

    name: str
    method: str
    call_count: int
    max_calls: int
    window_seconds: float
    cooling: bool
    cooldown_remaining: float
    last_error_kind: str | None = None

    @classmethod
    def from_status(cls, provider: ProviderStatus) -> ProviderStatusResponse:
        snap = provider.snapshot
        return cls(
            name=snap.name,
            method=provider.method.value,
            call_count=snap.call_count,
            max_calls=snap.max_calls,
            window_seconds=snap.window_seconds,
            cooling=snap.cooling,
            cooldown_remaining=round(snap.cooldown_remaining, 3),
            last_error_kind=snap.last_error_kind.value if snap.last_error_kind else None,
        )


class ProvidersResponse(BaseModel):
    remote_enabled: bool
    providers: list[ProviderStatusResponse]


# =============================================================================
# Dependency Injection
# =============================================================================


def get_orchestrator(request: Request) -> ModerationOrchestratorProtocol:
    """Return the process-wide orchestrator built in the app lifespan.

    Raises:
        HTTPException: 503 if the lifespan has not built it yet
    """
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=ERROR_NOT_READY,
        )
    return orchestrator


# =============================================================================
# Router Definition
# =============================================================================


moderate_router = APIRouter(prefix=API_PREFIX, tags=[MODERATE_TAG])


@moderate_router.post(
    "/moderate",
    response_model=ModerateResponse,
    summary=MODERATE_SUMMARY,
)
async def moderate(
    request: ModerateRequest,
    orchestrator: Annotated[ModerationOrchestratorProtocol, Depends(get_orchestrator)],
) -> ModerateResponse:
    """Classify one message and return its display form."""
    message = await moderate_message(orchestrator, request.text, request.allow_remote)
    return ModerateResponse.from_message(message)


@moderate_router.post(
    "/moderate/batch",
    response_model=ModerateBatchResponse,
    summary=MODERATE_BATCH_SUMMARY,
)
async def moderate_batch(
    request: ModerateBatchRequest,
    orchestrator: Annotated[ModerationOrchestratorProtocol, Depends(get_orchestrator)],
) -> ModerateBatchResponse:
    """Classify several messages, results in request order."""
    results = [
        ModerateResponse.from_message(
            await moderate_message(orchestrator, text, request.allow_remote)
        )
        for text in request.texts
    ]
    return ModerateBatchResponse(results=results)


@moderate_router.get(
    "/moderate/providers",
    response_model=ProvidersResponse,
    summary=PROVIDERS_SUMMARY,
)
async def providers(
    orchestrator: Annotated[ModerationOrchestratorProtocol, Depends(get_orchestrator)],
) -> ProvidersResponse:
    """Report each remote tier's window usage and cooldown."""
    return ProvidersResponse(
        remote_enabled=getattr(orchestrator, "remote_enabled", True),
        providers=[ProviderStatusResponse.from_status(p) for p in orchestrator.provider_status()],
    )
