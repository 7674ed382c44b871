"""Fatal projection errors. Anything raised from here aborts the whole run."""

from __future__ import annotations

from typing import List


class ProjectionError(ValueError):
    pass


class ProjectionValidationError(ProjectionError):
    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class RateDataError(ProjectionError):
    """A term is missing from the rate table or has an unusable duration."""
