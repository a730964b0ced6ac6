from .dataset_validation import collect_issues, validate_dataset
from .errors import ValidationError, ValidationIssue

__all__ = ["ValidationError", "ValidationIssue", "collect_issues", "validate_dataset"]
