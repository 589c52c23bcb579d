"""
Custom exception hierarchy for AdRadar.

Provides a structured exception hierarchy for the failures the engine
actually raises:
- AppException: Base for all application errors
- ConfigError: Configuration-related errors (raised at load time)
- ScraperError: Page driver / navigation errors
- SessionError: Session persistence errors

Page states such as CAPTCHA or LOGIN_REQUIRED are *not* exceptions; they
are reported as PageType values inside a DiagnosisRecord.

Each exception includes:
- Descriptive message
- Optional error code for programmatic handling
- Optional context dictionary for debugging

Example:
    >>> from adradar.utils.exceptions import NavigationError
    >>> raise NavigationError("Timeout loading page", url=url)
"""

from __future__ import annotations

from typing import Any, Dict, Optional


# ============================================
# Base Exception
# ============================================


class AppException(Exception):
    """
    Base exception for all AdRadar application errors.

    Attributes:
        message: Human-readable error description.
        code: Optional error code for programmatic handling.
        context: Optional dictionary with debugging context.

    Example:
        >>> try:
        ...     raise AppException("Something went wrong", code="APP_001")
        ... except AppException as e:
        ...     print(f"Error {e.code}: {e.message}")
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error description.
            code: Optional error code (e.g., "CONFIG_INVALID").
            context: Optional dict with additional debugging info.
        """
        self.message = message
        self.code = code or self._default_code()
        self.context = context or {}
        super().__init__(self.message)

    def _default_code(self) -> str:
        """Generate default error code from class name."""
        # Convert CamelCase to UPPER_SNAKE_CASE
        name = self.__class__.__name__
        code = ""
        for i, char in enumerate(name):
            if char.isupper() and i > 0:
                code += "_"
            code += char.upper()
        return code

    def __str__(self) -> str:
        """String representation with code if available."""
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "context": self.context,
        }


# ============================================
# Configuration Errors
# ============================================


class ConfigError(AppException):
    """
    Base exception for configuration-related errors.

    Raised when there are issues with:
    - Loading configuration files
    - Parsing YAML
    - Validating site definitions
    """

    pass


class ConfigFileNotFoundError(ConfigError):
    """
    Raised when a required configuration file is not found.

    Example:
        >>> raise ConfigFileNotFoundError(
        ...     "Sites file not found",
        ...     path="/path/to/sites.yaml"
        ... )
    """

    def __init__(
        self,
        message: str = "Configuration file not found",
        path: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if path:
            context["path"] = path
        super().__init__(message, code="CONFIG_FILE_NOT_FOUND", context=context, **kwargs)


class ConfigurationError(ConfigError):
    """
    Raised when configuration is invalid or cannot be parsed.

    Example:
        >>> raise ConfigurationError(
        ...     "Selector chain 'containers' is empty",
        ...     context={"site": "OLX"}
        ... )
    """

    def __init__(
        self,
        message: str = "Invalid configuration",
        **kwargs,
    ) -> None:
        super().__init__(message, code="CONFIG_INVALID", **kwargs)


class UnknownSiteError(ConfigError):
    """Raised when a site identifier has no registered SiteConfig."""

    def __init__(
        self,
        message: str = "Unknown site",
        site: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if site:
            context["site"] = site
        super().__init__(message, code="UNKNOWN_SITE", context=context, **kwargs)


# ============================================
# Scraper Errors
# ============================================


class ScraperError(AppException):
    """
    Base exception for page driver errors.

    Raised when there are issues with:
    - Browser startup or crashes
    - Navigation
    - Monitor URLs the site does not support
    """

    pass


class NavigationError(ScraperError):
    """
    Raised when the page driver cannot load a URL.

    Example:
        >>> raise NavigationError(
        ...     "Navigation timeout",
        ...     url="https://www.olx.com.br/estado-sp",
        ...     timeout_ms=30000
        ... )
    """

    def __init__(
        self,
        message: str = "Navigation failed",
        url: Optional[str] = None,
        timeout_ms: Optional[int] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if url:
            context["url"] = url
        if timeout_ms:
            context["timeout_ms"] = timeout_ms
        super().__init__(message, code="NAVIGATION_ERROR", context=context, **kwargs)


class UnsupportedUrlError(ScraperError):
    """Raised when a monitor's search URL does not match the site's supported patterns."""

    def __init__(
        self,
        message: str = "URL not supported for site",
        url: Optional[str] = None,
        site: Optional[str] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if url:
            context["url"] = url
        if site:
            context["site"] = site
        super().__init__(message, code="UNSUPPORTED_URL", context=context, **kwargs)


# ============================================
# Session Errors
# ============================================


class SessionError(AppException):
    """Base exception for session persistence errors."""

    pass


class SessionConflictError(SessionError):
    """
    Raised when a session record changed between read and write.

    Example:
        >>> raise SessionConflictError(
        ...     session_id="sess-1",
        ...     expected_version=3,
        ...     actual_version=4
        ... )
    """

    def __init__(
        self,
        message: str = "Session record was modified concurrently",
        session_id: Optional[str] = None,
        expected_version: Optional[int] = None,
        actual_version: Optional[int] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if session_id:
            context["session_id"] = session_id
        if expected_version is not None:
            context["expected_version"] = expected_version
        if actual_version is not None:
            context["actual_version"] = actual_version
        super().__init__(message, code="SESSION_CONFLICT", context=context, **kwargs)
