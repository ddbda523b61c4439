"""
Domain errors raised by the service modules.
main.py converts them to HTTP responses.
"""

from typing import Optional


class ValidationError(ValueError):
    """A required input field is missing or fails parsing"""

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        self.message = message or f"{field} is required"
        super().__init__(self.message)


class AuthRequiredError(Exception):
    def __init__(self, message: str = "Authentication required"):
        self.message = message
        super().__init__(message)


class NotFoundError(LookupError):
    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ForbiddenError(Exception):
    pass
