"""
Quick demo script to run the BookSoul API locally.

Starts uvicorn with reload and prints the endpoints to try.
"""

import uvicorn

if __name__ == "__main__":
    print("=" * 60)
    print("Starting BookSoul Backend Demo")
    print("=" * 60)
    print()
    print("📌 API Endpoints:")
    print("   - Health Check:  GET  http://localhost:8000/health")
    print("   - Status:        GET  http://localhost:8000/recommendations/status")
    print("   - Generate:      POST http://localhost:8000/recommendations/generate")
    print("   - Rate a book:   POST http://localhost:8000/sessions/rating")
    print("   - API Docs:           http://localhost:8000/docs")
    print()
    print("📝 Test with curl:")
    print('   curl -X POST "http://localhost:8000/recommendations/generate" \\')
    print('     -H "Content-Type: application/json" \\')
    print("     -d '{\"survey_data\": {\"survey_mode\": \"quick\", \"favorite_genres\": [\"fiction\"],")
    print("          \"current_mood\": \"curious\", \"reading_goal\": \"entertain\", \"data_consent\": true}}'")
    print()
    print("=" * 60)
    print("Starting server on http://localhost:8000")
    print("Press Ctrl+C to stop")
    print("=" * 60)
    print()

    uvicorn.run(
        "booksoul.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
