"""
AWS Lambda handler for the Royalty Statement Engine API.

This is the production entry point for AWS Lambda deployments.
For local development, use main.py (Flask app) instead.
"""

import base64
import json
import logging

from royalty_engine import calculate_from_dict, generate_from_dict
from royalty_engine.config import EngineConfig
from royalty_engine.exceptions import RoyaltyEngineError

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Environment-driven settings (reused across warm invocations)
CONFIG = EngineConfig.from_env()
ENVIRONMENT = CONFIG.environment

# CORS headers for API Gateway
CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
}


def _response(status_code: int, body: dict) -> dict:
    return {"statusCode": status_code, "headers": CORS_HEADERS, "body": json.dumps(body)}


def lambda_handler(event, context):
    """
    Main Lambda entry point.

    Handles API Gateway events for:
    - GET /health
    - GET /api
    - POST /statements/preview
    - POST /statements/generate
    - POST /statements/calculate
    - OPTIONS (CORS preflight)
    """
    # Handle CORS preflight
    http_method = event.get("httpMethod") or event.get("requestContext", {}).get("http", {}).get("method", "")
    if http_method == "OPTIONS":
        return {"statusCode": 200, "headers": CORS_HEADERS, "body": ""}

    # Get path (supports both REST API and HTTP API formats)
    path = event.get("path") or event.get("rawPath", "")

    # Route to appropriate handler
    if path == "/health" and http_method == "GET":
        return handle_health()
    elif path == "/api" and http_method == "GET":
        return handle_api_info()
    elif path == "/statements/preview" and http_method == "POST":
        return handle_statements(event, lambda data: generate_from_dict(data, preview=True, config=CONFIG))
    elif path == "/statements/generate" and http_method == "POST":
        return handle_statements(event, lambda data: generate_from_dict(data, preview=False, config=CONFIG))
    elif path == "/statements/calculate" and http_method == "POST":
        return handle_statements(event, lambda data: calculate_from_dict(data, config=CONFIG))
    else:
        return _response(404, {"error": "Not found", "path": path})


def handle_health():
    """Health check endpoint."""
    return _response(200, {"status": "healthy", "environment": ENVIRONMENT})


def handle_api_info():
    """API information endpoint."""
    return _response(
        200,
        {
            "status": "ok",
            "message": "Royalty Statement Engine API",
            "version": "1.0",
            "environment": ENVIRONMENT,
            "runtime": "AWS Lambda",
            "endpoints": {
                "preview": "/statements/preview [POST]",
                "generate": "/statements/generate [POST]",
                "calculate": "/statements/calculate [POST]",
                "health": "/health [GET]",
            },
        },
    )


def _parse_body(event):
    body = event.get("body", "")
    if not isinstance(body, str):
        return body
    if not body:
        return None
    # Handle base64 encoded body (API Gateway)
    if event.get("isBase64Encoded"):
        body = base64.b64decode(body).decode("utf-8")
    return json.loads(body)


def handle_statements(event, run):
    """Parse the snapshot payload and run it through the engine."""
    try:
        input_data = _parse_body(event)
        if not input_data:
            return _response(400, {"error": "No input data provided", "status": "failed"})

        logger.info(f"Statement request: {event.get('path') or event.get('rawPath')}")
        result = run(input_data)
        return _response(200, result)

    except json.JSONDecodeError as e:
        logger.error(f"JSON parse error: {str(e)}")
        return _response(400, {"error": f"Invalid JSON: {str(e)}", "status": "failed"})

    except RoyaltyEngineError as e:
        logger.error(f"Statement error [{e.code}]: {str(e)}")
        if isinstance(e, ValueError):
            return _response(400, {"error": str(e), "code": e.code, "status": "validation_failed"})
        return _response(422, {"error": str(e), "code": e.code, "status": "failed"})

    except (ValueError, KeyError, TypeError) as e:
        # Validation errors from engine (missing fields, invalid types, etc.)
        logger.error(f"Validation error: {str(e)}")
        return _response(400, {"error": f"Validation error: {str(e)}", "status": "validation_failed"})

    except Exception as e:
        # Unexpected errors - log details but return generic message to avoid information disclosure
        logger.error(f"Unexpected processing error: {str(e)}", exc_info=True)
        return _response(500, {"error": "An unexpected error occurred during processing", "status": "failed"})
