"""
Exception hierarchy for the sync engine.

Provider failures carry the HTTP status that caused them so callers can
tell a broken credential (``AuthError``) from a missing page
(``NotFoundError``) from everything else.
"""


class PageSyncError(Exception):
    """Base exception for all pagesync errors."""


class ConfigurationError(PageSyncError):
    """Raised when a datasource or the application is misconfigured."""


class DataSourceNotFoundError(PageSyncError):
    """Raised when a requested datasource is not in the registry."""

    def __init__(self, identifier: str | None):
        message = (
            f"No datasource matched '{identifier}'"
            if identifier
            else "No datasources configured"
        )
        super().__init__(message)
        self.identifier = identifier


class ProviderError(PageSyncError):
    """Error talking to the content provider API."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class AuthError(ProviderError):
    """
    Credential rejected by the provider.

    Fatal for a whole run: every later call made with the same token
    will fail the same way.
    """


class NotFoundError(ProviderError):
    """Page id does not resolve to a database-backed page."""


class RepositoryError(PageSyncError):
    """Error raised by the persistence layer."""


class SlugConflictError(RepositoryError):
    """
    The store rejected a write on the (datasource_id, slug) unique index.

    Only reachable when two processes claim the same free slug at the
    same time. Not retried.
    """

    def __init__(self, datasource_id: str, slug: str | None):
        super().__init__(
            f"Slug '{slug}' is already taken in datasource '{datasource_id}'"
        )
        self.datasource_id = datasource_id
        self.slug = slug


class MetadataExtractionError(PageSyncError):
    """Wraps a failure inside a custom metadata extractor (logged, never raised)."""
