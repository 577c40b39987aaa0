"""
Pydantic schemas for API request and response validation.

Survey input, pipeline records (UserProfile, BookCandidate,
FinalRecommendation) and session/rating contracts.
"""
