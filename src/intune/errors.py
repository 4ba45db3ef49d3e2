from typing import Optional


class CategorySyncError(RuntimeError):
    """Base class for errors that abort a sync run."""


class CredentialsError(CategorySyncError):
    """Tenant id, client id or client secret could not be resolved."""


class AuthenticationError(CategorySyncError):
    """The identity endpoint refused to issue a token or could not be reached."""


class CatalogFetchError(CategorySyncError):
    """Categories or devices could not be fetched completely."""


class GraphRequestError(CategorySyncError):
    """A Graph API call returned a non-success status."""

    def __init__(self, method: str, url: str, status_code: int, body: Optional[str] = None):
        self.method = method
        self.url = url
        self.status_code = status_code
        self.body = (body or "")[:300]
        super().__init__(f"{method} {url} -> HTTP {status_code}: {self.body}")
