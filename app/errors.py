class ValidationFailed(Exception):
    """Request payload broke one or more field rules. Rendered as 400."""

    def __init__(self, errors: dict[str, list[str]]):
        super().__init__("validation failed")
        self.errors = errors


class ConflictError(Exception):
    """A storage-level uniqueness constraint was violated."""

    def __init__(self, field: str, message: str | None = None):
        super().__init__(message or f"The {field} has already been taken.")
        self.field = field
        self.errors = {field: [str(self)]}


class EntityNotFound(Exception):
    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class AuthenticationError(Exception):
    """Bearer credential is missing, malformed or expired."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason
