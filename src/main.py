"""Main application entry point for the DormDash ordering service.

Runs the FastAPI application locally with uvicorn. The application itself is
built by dormdash_service.app_factory, shared with the Lambda handler.
"""

import logging
import os

from fastapi import FastAPI

from dormdash_service.app_factory import get_fastapi_app

logger = logging.getLogger(__name__)

# Create the FastAPI application instance (only when not in test mode)
# This prevents the app from being created during test collection
if os.getenv("ENVIRONMENT") != "test":  # noqa: SIM108
    app = get_fastapi_app()
else:
    # Create a placeholder app for test imports
    app = FastAPI()


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8001"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"Starting development server on {host}:{port}")
    logger.info(f"API documentation available at http://{host}:{port}/docs")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
