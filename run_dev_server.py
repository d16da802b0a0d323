"""
Start the API locally with auto-reload.

Usage:
    python run_dev_server.py
"""

import uvicorn

if __name__ == "__main__":
    print("=" * 60)
    print("Starting Team CRM Backend")
    print("=" * 60)
    print()
    print("API Endpoints:")
    print("   - Health Check:  GET  http://localhost:8000/health")
    print("   - Clients:       GET  http://localhost:8000/clients")
    print("   - Calendar:      GET  http://localhost:8000/calendar/events?scope=all")
    print("   - API Docs:           http://localhost:8000/docs")
    print()
    print("Authentication:")
    print("   All endpoints (except /health) require:")
    print("   Authorization: Bearer <supabase access token>")
    print()
    print("=" * 60)

    uvicorn.run(
        "crm_backend.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
