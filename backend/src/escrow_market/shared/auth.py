"""
Authentication utilities for extracting user info from Cognito tokens.
"""
from typing import Optional

from .errors import Unauthorized


def get_user_sub(event: dict) -> Optional[str]:
    """
    Extract user sub (unique ID) from Cognito authorizer claims.

    Args:
        event: API Gateway Lambda proxy event

    Returns:
        User sub string or None if not authenticated
    """
    try:
        return event['requestContext']['authorizer']['claims']['sub']
    except (KeyError, TypeError):
        return None


def require_user_sub(event: dict) -> str:
    """Like get_user_sub, but an unauthenticated request is an error."""
    user_id = get_user_sub(event)
    if not user_id:
        raise Unauthorized('Missing authenticated user')
    return user_id
