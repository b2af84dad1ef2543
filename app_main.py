"""Application entry point for the BetQuiz assessment server."""

from __future__ import annotations

from betquiz_app.core.assessment_manager import AssessmentManager
from betquiz_app.core.services.question_store import QuestionStore
from betquiz_app.server.api_server import create_api_app, run_api_server
from betquiz_app.utils.logging_config import configure_logging
from betquiz_app.utils.settings import get_settings


def main() -> None:
    """Initialize logging, wire the core services, and serve the API."""
    settings = get_settings()
    logger = configure_logging(settings.log_level.upper())
    logger.info("Starting BetQuiz assessment server…")

    question_store = None
    if settings.database_url:
        question_store = QuestionStore(settings.database_url)
        logger.info("Database configured; ZIP uploads will be persisted.")
    else:
        logger.warning("No database configured; ZIP uploads will be processed but not persisted.")

    app = create_api_app(
        manager=AssessmentManager(),
        question_store=question_store,
        cors_origins=settings.cors_origins,
    )
    logger.info("Health check available at http://%s:%d/api/health", settings.host, settings.port)
    run_api_server(app, host=settings.host, port=settings.port, log_level=settings.log_level)


if __name__ == "__main__":
    main()
