"""Error types shared by the recurrence engine and its callers."""


class InvalidArgumentError(ValueError):
    """Raised when a caller hands the engine an argument it cannot act on.

    Examples: an edit mode that needs an occurrence date but got none, a
    weekly cadence without weekdays, or a non-positive weight.
    """
