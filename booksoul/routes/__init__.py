"""
FastAPI routers for all API endpoints.

- health: liveness probe
- recommendations: pipeline run, status, analytics, cache control
- sessions: ratings and session lookup
"""
