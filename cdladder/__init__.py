"""Year-by-year projections for CD ladders with a high-yield savings account."""

__version__ = "0.1.0"
