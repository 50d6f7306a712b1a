"""
dashboard/validators package marker.
"""

from dashboard.validators.csv_validator import CSVRowValidator, normalize_alias

__all__ = [
    "CSVRowValidator",
    "normalize_alias",
]
