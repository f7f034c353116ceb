"""Custom exception hierarchy for field-remapper errors."""

class FieldRemapperError(Exception):
    """Base exception for field-remapper domain errors."""
    pass


class UnrecognizedMappingType(FieldRemapperError):
    """Raised when a dimension or mode does not match any known mapping type."""
    pass


class NoForeignKeyRelation(FieldRemapperError):
    """Raised when FK target lookup runs on a field without a foreign key relation."""
    pass


class InvalidRemappingTarget(FieldRemapperError):
    """Raised when a mode or FK target is selected that is not on offer."""
    pass


class IncompleteRemapping(FieldRemapperError):
    """Raised when saving a remapping table that still has empty display values."""
    pass


class TransitionInProgress(FieldRemapperError):
    """Raised when a second mode transition is issued for a field with one in flight."""
    pass


class MetadataError(FieldRemapperError):
    """Raised for invalid metadata documents or unknown database/table/field ids."""
    pass


class ConfigError(FieldRemapperError):
    """Raised for invalid settings files or environment overrides."""
    pass
