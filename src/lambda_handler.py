"""AWS Lambda handler for API Gateway requests.

Adapts the FastAPI application to Lambda through the Mangum ASGI adapter.

Sessions, carts and live order streams are held in the memory of the process
that opened them, and Lambda gives no guarantee that two requests reach the
same process. The stateful API (sign-up, sign-in, carts, orders, dashboard,
assistant) is therefore only supported on the single-process uvicorn
deployment in main.py. Under Lambda only the public read-only routes are
served; every other request is answered with 501 without reaching the app.
"""

import json
import logging
import os
from typing import Any

from mangum import Mangum

from dormdash_service.app_factory import get_fastapi_app

logger = logging.getLogger(__name__)

PUBLIC_PATHS = ("/health", "/vendors")

# Create FastAPI app and Mangum adapter (cached for warm starts, skip in test mode)
if os.getenv("ENVIRONMENT") != "test":
    app = get_fastapi_app()
    mangum_handler = Mangum(app, lifespan="off")
else:
    app = None  # type: ignore
    mangum_handler = None  # type: ignore


def is_public_request(event: dict[str, Any]) -> bool:
    """Check whether an API Gateway event targets a stateless public route.

    Handles both the HTTP API (2.0) and REST API (1.0) payload formats.
    """
    http = event.get("requestContext", {}).get("http", {})
    method = (http.get("method") or event.get("httpMethod") or "").upper()
    path = event.get("rawPath") or event.get("path") or ""

    if method != "GET":
        return False

    return any(path == public or path.startswith(f"{public}/") for public in PUBLIC_PATHS)


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Lambda entry point for API Gateway requests.

    Args:
        event: API Gateway event payload
        context: The Lambda context object

    Returns:
        Response dict with statusCode and body
    """
    logger.info(f"Received Lambda invocation, request_id: {context.request_id}")

    if not is_public_request(event):
        logger.warning(
            f"Refusing session route {event.get('rawPath') or event.get('path')} under Lambda"
        )
        return {
            "statusCode": 501,
            "headers": {"content-type": "application/json"},
            "body": json.dumps(
                {"detail": "This endpoint is only available on the long-running API server."}
            ),
        }

    try:
        result: dict[str, Any] = mangum_handler(event, context)
        return result

    except Exception as e:
        logger.exception(f"Unhandled error in Lambda handler: {e}")
        return {
            "statusCode": 500,
            "body": "Internal server error",
        }
