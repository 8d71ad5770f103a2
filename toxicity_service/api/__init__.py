"""FastAPI routes and endpoints.

Endpoints:
- GET /health: Service health status
- GET /ready: Readiness probe (orchestrator built)
- POST /v1/moderate: Classify one message
- POST /v1/moderate/batch: Classify several messages
- GET /v1/moderate/providers: Remote tier rate/quota status
"""
