import json
from typing import Any, Dict, List, Optional


class BaseServiceError(Exception):
    """Base exception for all service-related errors."""

    status_code = 500

    def __init__(self, message: str = "", **details: Any):
        super().__init__(message)
        self.message = message or self.__class__.__name__
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        """JSON body returned to the caller: a readable error plus structured hints."""
        body: Dict[str, Any] = {"error": self.message}
        body.update({k: v for k, v in self.details.items() if v is not None})
        return body


class ValidationError(BaseServiceError):
    """Raised when a required field is missing or malformed. No remote call has been made."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, field=field)
        self.field = field


class NotFoundError(BaseServiceError):
    """Raised when a draft, listing or store is not found for the current user."""

    status_code = 404


class ConflictingOperation(BaseServiceError):
    """Raised when a draft is not in the state an operation expects (e.g. already publishing)."""

    status_code = 409

    def __init__(self, message: str, current_status: Optional[str] = None):
        super().__init__(message, currentStatus=current_status)
        self.current_status = current_status


class DatabaseError(BaseServiceError):
    """Exception raised for database-related errors."""
    pass


# ---------------------------------------------------------------------------
# eBay
# ---------------------------------------------------------------------------

class EbayServiceError(BaseServiceError):
    """Base exception for eBay-specific errors."""
    pass


class StoreNotConnected(EbayServiceError):
    """The user has no store with live eBay credentials."""

    status_code = 400


class EbayNotConfigured(EbayServiceError):
    """The eBay application credentials are missing from the environment."""

    status_code = 503


class TokenUnavailable(EbayServiceError):
    """No refresh token is available to obtain a new access token."""

    status_code = 401


class TokenRefreshFailed(EbayServiceError):
    """The OAuth refresh (or code) exchange was rejected by eBay."""

    status_code = 502

    def __init__(self, message: str, remote_body: Optional[str] = None):
        super().__init__(message, remoteBody=remote_body)
        self.remote_body = remote_body


class MissingLocation(EbayServiceError):
    """No merchant location key is configured; there is no safe default."""

    status_code = 400

    def __init__(self, message: str = "Missing merchantLocationKey", store_defaults: Optional[Dict] = None):
        super().__init__(message, storeDefaults=store_defaults)


class MissingPolicies(EbayServiceError):
    """One or more business policy ids could not be resolved, even after discovery."""

    status_code = 400

    def __init__(self, message: str, missing: Dict[str, bool], store_defaults: Optional[Dict] = None):
        super().__init__(message, missing=missing, storeDefaults=store_defaults)
        self.missing = missing


class RemoteRequestFailed(EbayServiceError):
    """
    Non-2xx response from the eBay REST API.

    The response body is parsed once, here, into the first error's numeric
    ``code`` and ``message`` so callers never re-parse strings.
    """

    status_code = 502

    def __init__(self, http_status: int, path: str, raw_body: str = ""):
        self.http_status = http_status
        self.path = path
        self.raw_body = raw_body or ""
        self.errors = self._parse_errors(self.raw_body)
        first = self.errors[0] if self.errors else {}
        self.code: Optional[int] = first.get("errorId") if isinstance(first.get("errorId"), int) else None
        self.error_message: Optional[str] = first.get("message") if isinstance(first.get("message"), str) else None
        super().__init__(
            f"eBay API request failed ({http_status}) for {path}: {self.raw_body[:500]}",
            httpStatus=http_status,
            path=path,
            ebayError=self.parsed,
            raw=self.raw_body or None,
        )

    @staticmethod
    def _parse_errors(raw_body: str) -> List[Dict[str, Any]]:
        try:
            payload = json.loads(raw_body)
        except (TypeError, ValueError):
            return []
        errors = payload.get("errors") if isinstance(payload, dict) else None
        return [e for e in errors if isinstance(e, dict)] if isinstance(errors, list) else []

    @property
    def parsed(self) -> Optional[Dict[str, Any]]:
        if self.code is None and self.error_message is None:
            return None
        return {"code": self.code, "message": self.error_message}

    @property
    def is_unauthorized(self) -> bool:
        return self.http_status == 401


class MalformedRemoteResponse(EbayServiceError):
    """eBay answered 2xx but without a field we depend on (e.g. offerId). Never retried."""

    status_code = 502

    def __init__(self, message: str, response: Any = None):
        super().__init__(message, response=response)
        self.response = response


class PublishRejected(EbayServiceError):
    """eBay refused to publish an offer for a business reason other than an invalid category."""

    status_code = 400

    def __init__(self, message: str, code: Optional[int] = None, remote_message: Optional[str] = None):
        super().__init__(message, ebayError={"code": code, "message": remote_message})
        self.code = code
        self.remote_message = remote_message


class CategoryLookupUnavailable(EbayServiceError):
    """The category was rejected and the taxonomy suggestion lookup itself failed."""

    status_code = 400

    def __init__(self, message: str, ebay_error: Optional[Dict] = None, hint: Optional[str] = None):
        super().__init__(message, ebayError=ebay_error, hint=hint)


class InvalidCategoryNoAlternative(EbayServiceError):
    """The category was rejected and no different suggestion exists; the seller must pick one."""

    status_code = 400

    def __init__(self, message: str, ebay_error: Optional[Dict] = None, suggestions: Optional[List[Dict]] = None):
        super().__init__(message, ebayError=ebay_error, suggestions=suggestions or [])
        self.suggestions = suggestions or []


# ---------------------------------------------------------------------------
# Image analysis
# ---------------------------------------------------------------------------

class AnalyzerError(BaseServiceError):
    """Raised when the image analysis call fails or returns unusable output."""

    status_code = 502
