"""
Gift Recommendations API - FastAPI Main Entry

✅ LOCAL:
    cd backend
    pip install -e ..[test]
    python -m uvicorn giftfinder.main:app --reload --host 0.0.0.0 --port 8000

✅ REQUIRED ENV (backend/.env works locally):
    AE_APP_KEY=...
    AE_APP_SECRET=...
    AE_TRACKING_ID=...

✅ TEST:
    curl -i http://127.0.0.1:8000/health
    curl -i -X POST "http://127.0.0.1:8000/recommendations?page=1&debug=1" \
        -H "Content-Type: application/json" \
        -d '{"country":"BR","language":"pt-BR","budget_bucket":"$50-99","interests":["Tech & Gadgets"]}'
    curl -i "http://127.0.0.1:8000/ae-test?kw=earbuds&lang=en&priced=1"

✅ PRODUCTION:
    python -m uvicorn giftfinder.main:app --host 0.0.0.0 --port $PORT
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from giftfinder.core.config import settings
from giftfinder.core.logging import configure_logging

# ✅ Routers
from giftfinder.api.routes_diagnostics import router as diagnostics_router
from giftfinder.api.routes_recommendations import router as recommendations_router


def create_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="Gift Recommendations API",
        version=settings.APP_VERSION,
        description="AliExpress-backed gift recommendations for the quiz front-end",
    )

    # ✅ CORS
    # The quiz front-end calls us cross-origin from the browser
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    # ✅ Root (GET /)
    @app.get("/")
    def root():
        return {
            "name": "Gift Recommendations API",
            "status": "ok",
            "docs": "/docs",
            "health": "/health",
            "version": "/version",
        }

    # ✅ Health Check (GET /health)
    @app.get("/health")
    def health():
        return {"ok": True}

    # ✅ Version endpoint (GET /version)
    @app.get("/version")
    def version():
        return {"version": settings.APP_VERSION, "build": settings.BUILD_ID}

    # ✅ Mount routers
    app.include_router(recommendations_router)
    app.include_router(diagnostics_router)

    return app


app = create_app()
