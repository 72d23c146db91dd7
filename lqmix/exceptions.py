"""Exceptions raised by lqmix."""


class DataValidationError(ValueError):
    """Input observations violate the expected schema.

    Attributes
    ----------
    column : str or None
        Offending column.
    rows : list
        Index labels of the offending rows (may be empty).
    """

    def __init__(self, message, column=None, rows=None):
        super().__init__(message)
        self.column = column
        self.rows = list(rows) if rows is not None else []


class FitFailedError(RuntimeError):
    """No usable fit was produced where at least one was required."""
