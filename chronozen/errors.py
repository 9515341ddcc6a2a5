"""Error taxonomy shared by the store, scheduler, and controller."""


class NotFound(Exception):
    """Raised when update/delete targets an id that is not stored."""

    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"{kind} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class PersistenceFailure(Exception):
    """Raised when the underlying medium cannot be read or written."""
    pass


class InvalidTimeSpec(ValueError):
    """Raised when a date or time string cannot be parsed."""
    pass


class ValidationError(Exception):
    """Raised when user input for an event or todo is rejected."""
    pass


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""
    pass
