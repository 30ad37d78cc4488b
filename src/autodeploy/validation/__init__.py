from .validator import ValidationResult, ValidationStatus, ensure_valid, validate

__all__ = ["validate", "ensure_valid", "ValidationResult", "ValidationStatus"]
