"""AWS Lambda handler for API Gateway requests.

Adapts the FastAPI application to API Gateway events through Mangum. The
application is built once per cold start and reused on warm starts.
"""

import logging
import os
from typing import Any

from mangum import Mangum

logger = logging.getLogger(__name__)

# Create FastAPI app and Mangum adapter (cached for warm starts, skip in test mode)
if os.getenv("ENVIRONMENT") != "test":
    from main import app

    mangum_handler = Mangum(app, lifespan="off")
else:
    mangum_handler = None  # type: ignore


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Lambda entry point for API Gateway requests.

    Args:
        event: The API Gateway event payload
        context: The Lambda context object

    Returns:
        API Gateway response dict with statusCode and body
    """
    logger.info(f"Received Lambda invocation, request_id: {getattr(context, 'aws_request_id', None)}")

    try:
        result: dict[str, Any] = mangum_handler(event, context)
        return result
    except Exception as e:
        logger.exception(f"Unhandled error in Lambda handler: {e}")
        return {
            "statusCode": 500,
            "headers": {"Content-Type": "application/json"},
            "body": '{"return_code": "SERVER_ERROR", "message": "Internal server error"}',
        }
