"""Data layer error hierarchy."""

from wren.errors import NotFound, WrenError


class DataError(WrenError):
    """Base for all wren.data errors."""


class QueryError(DataError):
    """Raised when a SQL statement fails."""


class ModelNotFoundError(NotFound):
    """``Model.find_or_fail`` found no row. Dispatch turns it into a 404."""

    def __init__(self, detail: str = "Model not found") -> None:
        super().__init__(detail)
