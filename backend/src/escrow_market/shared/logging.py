"""
Logging utilities for Lambda handlers.
"""
import logging
import json

from .config import config

# Configure logger
logger = logging.getLogger('escrow_market')
logger.setLevel(config.LOG_LEVEL)

# Add handler if not already configured
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    logger.addHandler(handler)


def describe_event(event: dict) -> dict:
    """
    Reduce a Lambda event to what is worth logging: the route or scheduler
    source, the caller's Cognito sub and the request parameters.
    Bodies, headers and the rest of the claims stay out of the logs.
    """
    if 'httpMethod' not in event:
        return {'source': event.get('source', 'unknown')}
    claims = (event.get('requestContext') or {}).get('authorizer', {}).get('claims', {})
    return {
        'route': f"{event['httpMethod']} {event.get('resource') or event.get('path', '')}",
        'actor': claims.get('sub'),
        'pathParameters': event.get('pathParameters'),
        'queryStringParameters': event.get('queryStringParameters'),
    }


def log_event(event: dict) -> None:
    """Log incoming Lambda event for debugging."""
    try:
        logger.info(f"Lambda event: {json.dumps(describe_event(event), default=str)}")
    except (TypeError, ValueError, AttributeError) as e:
        logger.warning(f"Could not log event: {e}")
