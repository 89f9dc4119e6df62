"""
Error types for registry provider login.

Every failure raised by the login manager is a RegistryLoginError carrying the
provider it concerns, an error category, actionable suggestions for the
operator and whether the calling reconcile loop may retry on its next
interval. Messages only ever hold structural information (status codes,
segment counts, provider names); credential material never reaches them.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from registry_login.constants import AUTOLOGIN_FLAGS, PROVIDER_NAMES, Provider

# Longest slice of a remote error body kept in a message
MAX_BODY_LENGTH = 512


class ErrorCategory(Enum):
    """Categories of errors for better error handling"""
    AUTHENTICATION = "authentication"
    CONFIGURATION = "configuration"
    INPUT = "input"
    NETWORK = "network"
    RESPONSE = "response"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class RetryableErrorType(Enum):
    """Types of errors as seen by a caller deciding whether to retry"""

    TEMPORARY = "temporary"  # Transport failures, 5xx, rate limiting, timeouts
    PERMANENT = "permanent"  # Configuration, malformed input or responses


class ActionableError(Exception):
    """Exception with actionable guidance for users"""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.UNKNOWN,
                 suggestions: Optional[List[str]] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize actionable error

        Args:
            message: Primary error message
            category: Error category for classification
            suggestions: List of suggested fixes
            details: Additional context information
        """
        self.message = message
        self.category = category
        self.suggestions = suggestions or []
        self.details = details or {}
        super().__init__(message)

    def format_message(self) -> str:
        """Format the complete error message with suggestions"""
        lines = [f"❌ {self.message}"]

        if self.suggestions:
            lines.append("\n💡 Suggested fixes:")
            for i, suggestion in enumerate(self.suggestions, 1):
                lines.append(f"   {i}. {suggestion}")

        if self.details:
            lines.append("\n📋 Additional details:")
            for key, value in self.details.items():
                lines.append(f"   {key}: {value}")

        return "\n".join(lines)


class RegistryLoginError(ActionableError):
    """Base class for all registry login failures"""

    default_category = ErrorCategory.UNKNOWN
    retryable = False

    def __init__(self, message: str, provider: Optional[Provider] = None,
                 suggestions: Optional[List[str]] = None, details: Optional[Dict[str, Any]] = None):
        self.provider = provider
        if provider is not None:
            details = dict(details or {})
            details.setdefault("provider", provider.value)
        super().__init__(message, category=self.default_category, suggestions=suggestions, details=details)


class UnconfiguredProvider(RegistryLoginError):
    """The image's registry provider is not enabled for login.

    Not transient: retrying without a configuration change gives the same result.
    """

    default_category = ErrorCategory.CONFIGURATION

    def __init__(self, provider: Provider):
        name = PROVIDER_NAMES[provider]
        flag = AUTOLOGIN_FLAGS.get(provider)
        suggestions = [f"Set the controller flag {flag} to enable {name} login"] if flag else []
        super().__init__(
            f"{name} authentication failed: registry provider not configured for login",
            provider=provider,
            suggestions=suggestions,
        )


class ImageParseError(RegistryLoginError):
    """The image reference could not be parsed"""

    default_category = ErrorCategory.INPUT

    def __init__(self, image: str, reason: str, provider: Optional[Provider] = None):
        self.image = image
        self.reason = reason
        super().__init__(
            f"failed to parse image reference '{image}': {reason}",
            provider=provider,
            details={"image": image},
        )


class SDKError(RegistryLoginError):
    """A cloud SDK or identity call failed.

    The original exception is kept as ``__cause__`` by the raiser.
    """

    default_category = ErrorCategory.AUTHENTICATION
    retryable = True

    def __init__(self, provider: Provider, operation: str, error: Exception):
        self.operation = operation
        self.error_type = type(error).__name__
        super().__init__(
            f"{PROVIDER_NAMES[provider]} {operation} failed: {self.error_type}: {error}",
            provider=provider,
            details={"operation": operation, "error_type": self.error_type},
        )


class EmptyAuthorizationData(RegistryLoginError):
    """The token API answered without any usable authorization data"""

    default_category = ErrorCategory.RESPONSE

    def __init__(self, provider: Provider = Provider.AWS, message: str = "no authorization data"):
        super().__init__(message, provider=provider)


class InvalidTokenFormat(RegistryLoginError):
    """A decoded authorization token is not of the form ``username:password``"""

    default_category = ErrorCategory.RESPONSE

    def __init__(self, segments: int, provider: Provider = Provider.AWS, reason: Optional[str] = None):
        self.segments = segments
        message = reason or f"invalid authorization token, expected to be of length 2, have {segments}"
        super().__init__(message, provider=provider, details={"segments": segments})


class ExchangeHTTPError(RegistryLoginError):
    """The registry token exchange endpoint answered with a non-2xx status"""

    default_category = ErrorCategory.AUTHENTICATION

    def __init__(self, status_code: int, errors: Optional[List[Dict[str, str]]] = None,
                 body: Optional[str] = None, provider: Provider = Provider.AZURE):
        self.status_code = status_code
        self.errors = errors or []
        if self.errors:
            message = "; ".join(
                f"{entry.get('code', '')}: {entry.get('message', '')}" for entry in self.errors
            )
        else:
            message = f"unexpected status code {status_code}: {(body or '')[:MAX_BODY_LENGTH]}"
        suggestions = []
        if status_code in (401, 403):
            suggestions = [
                "Verify the identity has the AcrPull role on the registry",
                "Check AZURE_CLIENT_ID matches the identity's client ID",
            ]
        super().__init__(
            f"error exchanging token: {message}",
            provider=provider,
            suggestions=suggestions,
            details={"status_code": status_code},
        )

    @property
    def retryable(self) -> bool:
        return self.status_code >= 500 or self.status_code == 429


class ExchangeDecodeError(RegistryLoginError):
    """The token exchange endpoint answered 2xx with an unusable body"""

    default_category = ErrorCategory.RESPONSE

    def __init__(self, reason: str, provider: Provider = Provider.AZURE):
        super().__init__(f"error exchanging token: invalid response: {reason}", provider=provider)


class LoginCancelledError(RegistryLoginError):
    """The login context was cancelled or its deadline passed"""

    default_category = ErrorCategory.TIMEOUT
    retryable = True

    def __init__(self, reason: str = "context deadline exceeded", provider: Optional[Provider] = None):
        self.reason = reason
        super().__init__(f"login aborted: {reason}", provider=provider)


def is_retryable_error(error: Exception) -> Tuple[bool, RetryableErrorType]:
    """Determine if a login error is worth retrying on the next interval

    Args:
        error: The exception raised by a login

    Returns:
        Tuple of (is_retryable, error_type)
    """
    if isinstance(error, RegistryLoginError):
        if error.retryable:
            return True, RetryableErrorType.TEMPORARY
        return False, RetryableErrorType.PERMANENT

    # Unknown errors default to retryable
    return True, RetryableErrorType.TEMPORARY
