"""
Error Taxonomy

Precondition errors are reported straight to the caller and never retried.
Upstream client errors live next to their clients (GeminiError, FirecrawlError).
"""


class GeospyError(Exception):
    """Base class for application errors."""


class PreconditionError(GeospyError):
    """Request cannot run: missing entity, bad input, or missing configuration."""


class NotFoundError(PreconditionError):
    """Entity does not exist or is not owned by the requesting user."""

    def __init__(self, entity: str, entity_id=None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class InvalidRequestError(PreconditionError):
    """Malformed or empty input."""


class MissingCredentialError(PreconditionError):
    """An external service needed by the operation is not configured."""

    def __init__(self, service: str, env_var: str):
        self.service = service
        self.env_var = env_var
        super().__init__(f"{service} is not configured ({env_var} missing)")


class MissingTargetContentError(PreconditionError):
    """No successful scrape exists for any target URL of the project."""
