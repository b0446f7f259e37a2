"""Audit and clean stored book records."""

from .auditor import QualityAuditor
from .cleaner import DataCleaner
from .models import (
    BulkCleaningResult,
    CleaningResult,
    CleaningSuggestion,
    DataQualityIssue,
    DataQualityReport,
    IssueCategory,
    IssueType,
)

__all__ = [
    "BulkCleaningResult",
    "CleaningResult",
    "CleaningSuggestion",
    "DataCleaner",
    "DataQualityIssue",
    "DataQualityReport",
    "IssueCategory",
    "IssueType",
    "QualityAuditor",
]
