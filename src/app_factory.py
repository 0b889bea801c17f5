"""
Trust Witness Server - Trust Scoring for Autonomous Agents
Standalone microservice scoring the data autonomous agents act on

Architecture:
- Trust Engine: decay, source reliability, consensus, composite score
- Provenance: per-data-point processing chains with integrity checks
- Decisions: constraint gate, reversal plans, outcome quality
- Explainability: beginner / intermediate / expert projections

Installation:
- Native installation (no Docker required)
- Redis optional for shared source reliability (in-memory otherwise)
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from src.config.settings import settings, get_cors_config


def configure_logging() -> None:
    """Configure root logging from settings (once per process)."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=settings.LOG_FORMAT,
    )


logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure Trust Witness Server application."""

    configure_logging()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Trust scoring, provenance tracking and decision accountability",
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    # CORS
    cors_config = get_cors_config()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_config["allow_origins"],
        allow_credentials=cors_config["allow_credentials"],
        allow_methods=cors_config["allow_methods"],
        allow_headers=cors_config["allow_headers"],
    )

    # Import routes (deferred to avoid circular imports)
    from src.api.routes import decisions, provenance, stats, trust

    # Register routes
    app.include_router(trust.router)
    app.include_router(provenance.router)
    app.include_router(decisions.router)
    app.include_router(stats.router)

    @app.get("/")
    async def root():
        """Root endpoint - service information"""
        return {
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "description": "Trust scoring, provenance tracking and decision accountability",
            "status": "operational",
            "endpoints": {
                "score": "/api/trust/score",
                "explain": "/api/trust/explain",
                "provenance": "/api/provenance/chains",
                "decisions": "/api/decisions",
                "sources": "/api/stats/sources",
                "health": "/health",
                "docs": "/docs"
            }
        }

    @app.get("/health")
    async def health():
        """Health check endpoint"""
        from src.services.trust_engine import get_engine

        engine = get_engine()
        return {
            "status": "ok",
            "service": "trust-witness-server",
            "version": settings.APP_VERSION,
            "reliability_backend": "redis" if engine.registry.redis_client is not None else "memory",
        }

    logger.info(f"Trust Witness Server initialized on port {settings.PORT}")
    return app

# Create app instance
app = create_app()
