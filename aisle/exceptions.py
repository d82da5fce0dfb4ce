"""
Application Exceptions

Failures that callers need to tell apart. Request validation errors are
still raised as ``HTTPException`` directly in the routes; the classes here
cover collaborator failures (session store, content provider, moderation).

Ingestion errors carry the HTTP status and a machine readable ``kind`` so
the exception handler registered in ``aisle.main`` can render them.
"""


class AisleError(Exception):
    """Base class for application errors."""


class SessionLookupError(AisleError):
    """The session user could not be resolved (database unreachable, etc.)."""


class ContentIngestionError(AisleError):
    kind = "content_ingestion_failure"
    status_code = 500
    message = "Failed to ingest external content"

    def __init__(self, details: str = ""):
        super().__init__(details or self.message)
        self.details = details


class ProviderFetchError(ContentIngestionError):
    """
    The external content provider returned an error response.

    ``upstream_status`` is the provider's HTTP status when one was received.
    Upstream rate limiting is passed through as 429.
    """
    kind = "provider_fetch_failure"
    status_code = 502
    message = "Failed to fetch Bluesky content"

    def __init__(self, details: str = "", upstream_status: int | None = None):
        super().__init__(details)
        self.upstream_status = upstream_status
        if upstream_status == 429:
            self.status_code = 429
            self.message = "Rate limit exceeded"


class ProviderUnavailableError(ProviderFetchError):
    """The provider could not be reached at all (DNS, timeout, refused)."""
    status_code = 503
    message = "Service temporarily unavailable"


class ModerationServiceError(ContentIngestionError):
    kind = "moderation_service_failure"
    status_code = 500
    message = "Content moderation failed"
