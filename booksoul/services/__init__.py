"""
Service layer for the BookSoul backend.

Contains the orchestration that:
- Runs the five-stage recommendation pipeline (recommendation_service)
- Wraps Gemini with retries and error classification (llm_client)
- Caches final recommendations per survey (recommendation_cache)
- Persists survey sessions and ratings with in-memory fallback (session_service)

Services act as the glue between routes (HTTP layer) and agents/database.
Modules are imported directly (the pipeline stages import llm_client, so
this package does not re-export the orchestrator).
"""
