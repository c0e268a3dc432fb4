class EmoteHubError(Exception):
    """Base class for errors raised inside the service."""


class StorageUnavailableError(EmoteHubError):
    """Raised when Azure Storage is not configured or could not be initialised."""


class CatalogError(EmoteHubError):
    """Raised when the 7TV API answers with an error payload."""
