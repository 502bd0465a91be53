"""
Analyst Error Taxonomy

Failures that cannot be recovered locally are surfaced to the calling
layer as one of these typed errors. Each carries a ``context`` dict with
enough detail (profile id, opportunity id, operation) to log or retry.

Recoverable failures (a single embedding call, a single AI query
generation call) never reach the caller; they are converted to local
fallbacks at the step where they happen.
"""

from typing import Any, Dict, List, Optional


class AnalystError(Exception):
    """Base class for all analyst errors."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "context": self.context,
        }


class ConfigurationError(AnalystError):
    """Component used before initialization, or configured inconsistently."""


class UpstreamServiceError(AnalystError):
    """
    A collaborator (completion service, discovery, persistence) failed.

    Attributes:
        service: Name of the failing service (e.g. "openai")
        operation: Operation that failed (e.g. "embedding")
    """

    def __init__(
        self,
        message: str,
        service: str,
        operation: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.service = service
        self.operation = operation

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["service"] = self.service
        data["operation"] = self.operation
        return data


class NotFoundError(AnalystError):
    """A referenced profile or opportunity does not exist."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            f"{resource} not found: {resource_id}",
            {"resource": resource, "id": resource_id},
        )
        self.resource = resource
        self.resource_id = resource_id


class ValidationError(AnalystError):
    """Malformed input, e.g. an opportunity missing required fields."""

    def __init__(
        self,
        message: str,
        errors: Optional[List[Dict[str, Any]]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.errors: List[Dict[str, Any]] = list(errors or [])

    @classmethod
    def from_pydantic(
        cls,
        message: str,
        error: Any,
        context: Optional[Dict[str, Any]] = None,
    ) -> "ValidationError":
        """Build from a pydantic ValidationError, keeping loc, msg and type per error."""
        errors = [
            {"loc": [str(part) for part in err["loc"]], "msg": err["msg"], "type": err["type"]}
            for err in error.errors()
        ]
        return cls(message, errors=errors, context=context)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["errors"] = self.errors
        return data
