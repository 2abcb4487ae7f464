"""Input guards for outbound webhook URLs and HTTP headers."""

from dayflow_export.security.headers import is_valid_header_name, is_valid_header_value
from dayflow_export.security.urls import is_valid_webhook_url, redact_url

__all__ = [
    "is_valid_header_name",
    "is_valid_header_value",
    "is_valid_webhook_url",
    "redact_url",
]
