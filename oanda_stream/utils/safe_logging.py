"""
Safe Logging
============

Keeps bearer tokens and account identifiers out of logs and CLI output.
Stream URLs embed the account id in their path, so they go through here too.

Usage:
    from oanda_stream.utils.safe_logging import get_safe_logger

    logger = get_safe_logger(__name__)
    logger.info("Connecting", url=url, account_id=account_id)
    # Output: "Connecting | url=https://.../accounts/***************-001/... | account_id=***************-001"
"""

import logging
import os
import re
from typing import Any, Dict, Optional


class SecretProtector:
    """Masks credentials and account identifiers"""

    SENSITIVE_FIELDS = {
        'token', 'secret', 'password', 'authorization', 'api_key',
        'account_id', 'accountid', 'user_id', 'userid',
    }

    # Authorization header values
    BEARER_PATTERN = re.compile(r'(Bearer\s+)[A-Za-z0-9._~+/=-]+', re.IGNORECASE)

    # OANDA v20 account ids: 101-001-1234567-001
    ACCOUNT_ID_PATTERN = re.compile(r'\b\d{3}-\d{3}-\d{5,10}-\d{3}\b')

    # /accounts/<id>/ path segment in stream URLs
    ACCOUNT_PATH_PATTERN = re.compile(r'(/accounts/)([^/?]+)')

    @staticmethod
    def mask_string(value: str, visible_chars: int = 4) -> str:
        """
        Mask a string, showing only the last few characters

        Returns:
            Masked string like "****5678"
        """
        if not value or len(value) <= visible_chars:
            return "****"
        return "*" * (len(value) - visible_chars) + value[-visible_chars:]

    @staticmethod
    def mask_url(url: str) -> str:
        """Mask the account segment of a stream URL."""
        return SecretProtector.ACCOUNT_PATH_PATTERN.sub(
            lambda m: m.group(1) + SecretProtector.mask_string(m.group(2)),
            url,
        )

    @staticmethod
    def mask_dict(data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Mask sensitive values in a dictionary (keys stay visible)

        Args:
            data: Dictionary to mask

        Returns:
            Dictionary with sensitive values masked
        """
        if not isinstance(data, dict):
            return data

        masked = {}
        for key, value in data.items():
            key_lower = key.lower()
            is_sensitive = any(name in key_lower for name in SecretProtector.SENSITIVE_FIELDS)

            if is_sensitive:
                if isinstance(value, str):
                    masked[key] = SecretProtector.mask_string(value)
                else:
                    masked[key] = "***"
            elif isinstance(value, dict):
                masked[key] = SecretProtector.mask_dict(value)
            elif isinstance(value, str):
                masked[key] = SecretProtector.sanitize_message(value)
            else:
                masked[key] = value

        return masked

    @staticmethod
    def sanitize_message(message: str) -> str:
        """
        Remove secrets from a log message

        Args:
            message: Message to sanitize

        Returns:
            Sanitized message
        """
        message = SecretProtector.BEARER_PATTERN.sub(r'\1***', message)
        message = SecretProtector.mask_url(message)
        message = SecretProtector.ACCOUNT_ID_PATTERN.sub(
            lambda m: SecretProtector.mask_string(m.group(0)),
            message,
        )
        return message


class SafeLogger:
    """
    Logger that sanitizes every message and keyword context

    Usage:
        logger = SafeLogger(__name__)
        logger.info("Stream terminated", error="StreamReadError")
        # Output: "Stream terminated | error=StreamReadError"
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _format_safe_message(self, message: str, **kwargs) -> str:
        safe_message = SecretProtector.sanitize_message(message)

        if kwargs:
            safe_kwargs = SecretProtector.mask_dict(kwargs)
            kwargs_str = " | ".join(f"{k}={v}" for k, v in safe_kwargs.items())
            return f"{safe_message} | {kwargs_str}"

        return safe_message

    def debug(self, message: str, **kwargs):
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(self._format_safe_message(message, **kwargs))

    def info(self, message: str, **kwargs):
        self.logger.info(self._format_safe_message(message, **kwargs))

    def warning(self, message: str, **kwargs):
        self.logger.warning(self._format_safe_message(message, **kwargs))

    def error(self, message: str, **kwargs):
        self.logger.error(self._format_safe_message(message, **kwargs))


def get_safe_logger(name: str) -> SafeLogger:
    """
    Get a safe logger instance

    Args:
        name: Logger name (use __name__)
    """
    return SafeLogger(name)


def configure_logging(level: str = 'INFO', log_file: Optional[str] = None) -> None:
    """
    Install console (and optional file) handlers on the root logger.

    Args:
        level: Console level name, e.g. 'INFO' or 'DEBUG'
        log_file: Optional path; gets DEBUG and above
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    root.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(name)s | %(levelname)s | %(message)s'
        ))
        root.addHandler(file_handler)
