"""
Moderation API Endpoint Tests

- POST /v1/moderate returns verdict + display text
- POST /v1/moderate/batch preserves request order
- GET /v1/moderate/providers reports governor state
- Orchestrator injected via Depends(get_orchestrator)

FakeModerationOrchestrator is used throughout; no provider is contacted.
"""

from __future__ import annotations

from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from toxicity_service.api.moderate import MAX_BATCH_SIZE, get_orchestrator, moderate_router
from toxicity_service.classifiers.governor import ErrorKind, ProviderSnapshot
from toxicity_service.classifiers.orchestrator import (
    FakeModerationOrchestrator,
    ProviderStatus,
)
from toxicity_service.classifiers.redaction import REDACTION_PLACEHOLDER
from toxicity_service.classifiers.verdict import ClassificationMethod, Verdict

# =============================================================================
# Constants
# =============================================================================

MODERATE_ENDPOINT = "/v1/moderate"
MODERATE_BATCH_ENDPOINT = "/v1/moderate/batch"
PROVIDERS_ENDPOINT = "/v1/moderate/providers"

TOXIC_TEXT = "you absolute idiot"
CLEAN_TEXT = "see you at lunch"

TOXIC_VERDICT = Verdict(
    is_toxic=True,
    confidence=0.9,
    method=ClassificationMethod.SECONDARY_REMOTE,
    reason="Insult",
    categories=("harassment", "insult"),
)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_orchestrator() -> FakeModerationOrchestrator:
    statuses = [
        ProviderStatus(
            method=ClassificationMethod.PRIMARY_REMOTE,
            snapshot=ProviderSnapshot(
                name="gemini",
                call_count=15,
                max_calls=15,
                window_seconds=60.0,
                cooling=True,
                cooldown_remaining=42.1234,
                last_error_kind=ErrorKind.RATE_LIMITED,
            ),
        ),
        ProviderStatus(
            method=ClassificationMethod.SECONDARY_REMOTE,
            snapshot=ProviderSnapshot(
                name="groq",
                call_count=3,
                max_calls=30,
                window_seconds=60.0,
                cooling=False,
                cooldown_remaining=0.0,
                last_error_kind=None,
            ),
        ),
    ]
    return FakeModerationOrchestrator(verdicts={TOXIC_TEXT: TOXIC_VERDICT}, statuses=statuses)


@pytest.fixture
def app(fake_orchestrator: FakeModerationOrchestrator) -> FastAPI:
    application = FastAPI()
    application.include_router(moderate_router)
    application.dependency_overrides[get_orchestrator] = lambda: fake_orchestrator
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


# =============================================================================
# POST /v1/moderate
# =============================================================================


class TestModerateEndpoint:
    def test_toxic_message_redacted(self, client: TestClient) -> None:
        response = client.post(MODERATE_ENDPOINT, json={"text": TOXIC_TEXT})

        assert response.status_code == 200
        assert response.json() == {
            "is_toxic": True,
            "confidence": 0.9,
            "reason": "Insult",
            "categories": ["harassment", "insult"],
            "method": "secondary-remote",
            "display_text": REDACTION_PLACEHOLDER,
        }

    def test_clean_message_kept(self, client: TestClient) -> None:
        data = client.post(MODERATE_ENDPOINT, json={"text": CLEAN_TEXT}).json()
        assert data["is_toxic"] is False
        assert data["display_text"] == CLEAN_TEXT
        assert data["method"] == "lexicon"

    def test_whitespace_text_is_not_an_error(self, client: TestClient) -> None:
        response = client.post(MODERATE_ENDPOINT, json={"text": "   "})
        assert response.status_code == 200
        assert response.json()["confidence"] == 0.0

    def test_allow_remote_passed_through(
        self, client: TestClient, fake_orchestrator: FakeModerationOrchestrator
    ) -> None:
        client.post(MODERATE_ENDPOINT, json={"text": CLEAN_TEXT, "allow_remote": False})
        assert fake_orchestrator.calls == [(CLEAN_TEXT, False)]

    def test_missing_text_is_422(self, client: TestClient) -> None:
        response = client.post(MODERATE_ENDPOINT, json={})
        assert response.status_code == 422


# =============================================================================
# POST /v1/moderate/batch
# =============================================================================


class TestModerateBatchEndpoint:
    def test_results_in_request_order(self, client: TestClient) -> None:
        response = client.post(
            MODERATE_BATCH_ENDPOINT, json={"texts": [CLEAN_TEXT, TOXIC_TEXT, ""]}
        )

        assert response.status_code == 200
        results: list[dict[str, Any]] = response.json()["results"]
        assert [r["is_toxic"] for r in results] == [False, True, False]
        assert results[1]["display_text"] == REDACTION_PLACEHOLDER

    def test_empty_batch(self, client: TestClient) -> None:
        response = client.post(MODERATE_BATCH_ENDPOINT, json={"texts": []})
        assert response.json() == {"results": []}

    def test_oversized_batch_rejected(self, client: TestClient) -> None:
        texts = ["hi"] * (MAX_BATCH_SIZE + 1)
        response = client.post(MODERATE_BATCH_ENDPOINT, json={"texts": texts})
        assert response.status_code == 422


# =============================================================================
# GET /v1/moderate/providers
# =============================================================================


class TestProvidersEndpoint:
    def test_reports_each_tier(self, client: TestClient) -> None:
        data = client.get(PROVIDERS_ENDPOINT).json()

        assert data["remote_enabled"] is True
        gemini, groq = data["providers"]
        assert gemini["name"] == "gemini"
        assert gemini["method"] == "primary-remote"
        assert gemini["cooling"] is True
        assert gemini["cooldown_remaining"] == 42.123
        assert gemini["last_error_kind"] == "rate_limited"
        assert groq["last_error_kind"] is None
        assert groq["call_count"] == 3


# =============================================================================
# Dependency Injection
# =============================================================================


class TestDependencyInjection:
    def test_503_when_orchestrator_missing(self) -> None:
        application = FastAPI()
        application.include_router(moderate_router)
        client = TestClient(application)

        response = client.post(MODERATE_ENDPOINT, json={"text": CLEAN_TEXT})

        assert response.status_code == 503

    def test_orchestrator_read_from_app_state(
        self, fake_orchestrator: FakeModerationOrchestrator
    ) -> None:
        application = FastAPI()
        application.include_router(moderate_router)
        application.state.orchestrator = fake_orchestrator
        client = TestClient(application)

        response = client.post(MODERATE_ENDPOINT, json={"text": TOXIC_TEXT})

        assert response.json()["is_toxic"] is True
