# FILE: exceptions.py


class DeepWorkError(Exception):
    """Base class for domain rule rejections raised by the repository."""
    pass


class RecordNotFoundError(DeepWorkError):
    """Raised when an id does not resolve to a row owned by the user."""

    def __init__(self, entity: str):
        super().__init__(f"{entity} not found")
        self.entity = entity


class BlockOverlapError(DeepWorkError):
    """Raised when a time block would intersect another block on the same day."""

    def __init__(self, start: str, end: str, label: str):
        super().__init__(f"Time block overlaps with existing block {start}-{end} ({label})")
        self.start = start
        self.end = end
        self.label = label


class InvalidTimeRangeError(DeepWorkError):
    """Raised when a block does not end after it starts."""
    pass


class ActiveTaskLimitError(DeepWorkError):
    """Raised when pulling another task would exceed the active task cap."""

    def __init__(self, limit: int):
        super().__init__(f"You already have {limit} active tasks. Complete one before pulling another.")
        self.limit = limit


class ModelCallError(Exception):
    """Raised when the language model cannot be reached or returns nothing usable."""
    pass
