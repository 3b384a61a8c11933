"""
Sanitization Utilities

Helpers that keep secrets and oversized payloads out of logs and out of
processor-visible strings:
1. Safe truncation of display names
2. Redaction of credentials before logging
3. Redaction of secret-bearing dict keys
"""

import re
from typing import Any, Dict, Optional


SENSITIVE_KEYS = ("secret", "password", "token", "api_key", "authorization")


# ============================================================================
# SAFE STRING TRUNCATION
# ============================================================================

def safe_truncate(value: str, max_length: int, suffix: str = "...") -> str:
    """
    Truncate text without splitting the suffix off.

    Args:
        value: Text to truncate
        max_length: Maximum resulting length
        suffix: Appended when truncation happens

    Returns:
        The truncated text
    """
    if not value or len(value) <= max_length:
        return value

    truncate_at = max_length - len(suffix)
    if truncate_at <= 0:
        return suffix[:max_length]

    return value[:truncate_at] + suffix


# ============================================================================
# LOGGING SANITIZATION
# ============================================================================

def sanitize_for_log(value: Any, max_length: int = 200) -> str:
    """
    Make a value safe to log.

    Removes:
    - secrets, tokens and API keys (key=value and JSON forms)
    - bearer credentials and processor secret keys
    - card-like 16 digit numbers
    """
    if value is None:
        return "null"

    str_value = str(value)

    str_value = re.sub(
        r'(password|passwd|pwd|secret|token|api_key)[\"\']?\s*[:=]\s*[\"\']?[^\s\"\',}&]+',
        r'\1: [REDACTED]',
        str_value,
        flags=re.IGNORECASE
    )
    str_value = re.sub(r'Bearer\s+\S+', 'Bearer [REDACTED]', str_value)
    str_value = re.sub(r'\b(sk|rk)_(live|test)_[A-Za-z0-9]+', '[KEY_REDACTED]', str_value)
    str_value = re.sub(r'\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b', '[CARD_REDACTED]', str_value)

    return safe_truncate(str_value, max_length)


def redact_mapping(data: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Copy a dict with secret-bearing keys replaced, recursing into nested dicts and lists"""
    if not data:
        return data

    def sanitize_dict(d: Dict[str, Any]) -> Dict[str, Any]:
        result = {}
        for k, v in d.items():
            if any(sk in str(k).lower() for sk in SENSITIVE_KEYS):
                result[k] = "[REDACTED]"
            elif isinstance(v, dict):
                result[k] = sanitize_dict(v)
            elif isinstance(v, list):
                result[k] = [sanitize_dict(i) if isinstance(i, dict) else i for i in v]
            else:
                result[k] = v
        return result

    return sanitize_dict(data)
