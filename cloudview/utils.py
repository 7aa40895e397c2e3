"""Utility functions for CloudView collectors."""
from typing import Any, Dict, List, Optional
from botocore.exceptions import ClientError, BotoCoreError, EndpointConnectionError
import logging

from .errors import CloudViewError

logger = logging.getLogger(__name__)

ACCESS_DENIED_CODES = ['AccessDeniedException', 'UnauthorizedOperation', 'AccessDenied']
RATE_LIMIT_CODES = ['RequestLimitExceeded', 'Throttling', 'ThrottlingException', 'TooManyRequestsException']
NOT_FOUND_CODES = [
    'NoSuchBucket', 'NoSuchEntity', 'NotFound', '404',
    'InvalidInstanceID.NotFound', 'InvalidInstanceID.Malformed',
    'DBInstanceNotFound', 'DBClusterNotFoundFault',
    'InvalidVpcID.NotFound', 'InvalidGroup.NotFound', 'InvalidGroupId.Malformed',
]


class AWSAccessDeniedError(CloudViewError):
    """Raised when AWS access is denied."""
    pass


class AWSRateLimitError(CloudViewError):
    """Raised when AWS rate limit is hit."""
    pass


def get_error_code(error: Exception) -> Optional[str]:
    """Extract the AWS error code from a ClientError, if any."""
    if isinstance(error, ClientError):
        return error.response.get('Error', {}).get('Code')
    return None


def is_not_found(error: Exception) -> bool:
    code = get_error_code(error)
    if code is None:
        return False
    return code in NOT_FOUND_CODES or code.endswith('NotFound') or code.endswith('NotFoundFault')


def translate_aws_error(error: Exception, context: str) -> Exception:
    """
    Translate AWS errors into CloudView exceptions where a category applies.

    Args:
        error: The exception that occurred
        context: Context string describing what was being done

    Returns:
        AWSAccessDeniedError if access was denied, AWSRateLimitError if
        rate limited, otherwise the original error
    """
    if isinstance(error, ClientError):
        error_code = error.response.get('Error', {}).get('Code', '')
        error_message = error.response.get('Error', {}).get('Message', '')

        if error_code in ACCESS_DENIED_CODES:
            translated = AWSAccessDeniedError(f"Access denied for {context}: {error_message}")
        elif error_code in RATE_LIMIT_CODES:
            translated = AWSRateLimitError(f"Rate limit hit for {context}: {error_message}")
        else:
            return error
        translated.__cause__ = error
        return translated
    return error


def classify_error(error: Exception) -> str:
    """
    Map an exception to a warning category.

    Returns:
        One of 'permission_denied', 'rate_limited', 'not_found',
        'connection', 'api_error' or 'error'
    """
    if isinstance(error, AWSAccessDeniedError):
        return 'permission_denied'
    if isinstance(error, AWSRateLimitError):
        return 'rate_limited'
    code = get_error_code(error)
    if code is not None:
        if code in ACCESS_DENIED_CODES:
            return 'permission_denied'
        if code in RATE_LIMIT_CODES:
            return 'rate_limited'
        if is_not_found(error):
            return 'not_found'
        return 'api_error'
    if isinstance(error, EndpointConnectionError):
        return 'connection'
    if isinstance(error, BotoCoreError):
        return 'api_error'
    return 'error'


def tags_to_dict(tags: Optional[List[Dict[str, Any]]]) -> Dict[str, str]:
    """Convert an AWS [{'Key': k, 'Value': v}] tag list to a dict."""
    return {tag['Key']: tag.get('Value', '') for tag in tags or [] if 'Key' in tag}


def drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    """Remove None values."""
    return {k: v for k, v in data.items() if v is not None}
