"""Error kinds raised by the intermodal pipeline."""

from typing import List, Sequence


class IntermodalError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(IntermodalError):
    """Network and transit settings cannot be reconciled.

    Raised before any parsing starts; ``messages`` holds every reason that
    was logged by the reconciler.
    """

    def __init__(self, messages: Sequence[str]) -> None:
        self.messages: List[str] = list(messages)
        detail = "; ".join(self.messages) if self.messages else "invalid settings"
        super().__init__(f"Settings reconciliation failed: {detail}")


class BuildError(IntermodalError):
    """Source could not be decoded or a builder hit a malformed entity."""

    def __init__(self, message: str, entity_id: int | None = None) -> None:
        self.entity_id = entity_id
        if entity_id is not None:
            message = f"{message} (entity {entity_id})"
        super().__init__(message)


class UnsupportedOperationError(IntermodalError):
    """Feature exists in the interface but is not available yet."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Operation not supported yet: {operation}")
