"""
field-remapper: display-value remapping for database fields.

Main API:
- resolve_mode() / available_modes(): how a field is displayed and what it may switch to
- ModeTransitionController: mode switches against a metadata service
- begin_editing() / set_value() / save(): custom remapping table edits
- FieldEditingSession: one field's editing state over the above
"""

# Define version first to avoid circular imports
__version__ = "0.1.0"

from .dimension import (
    Mode,
    NoDimension,
    ExternalDimension,
    InternalDimension,
    dimension_from_dict,
    dimension_to_dict,
)
from .errors import (
    FieldRemapperError,
    UnrecognizedMappingType,
    NoForeignKeyRelation,
    InvalidRemappingTarget,
    IncompleteRemapping,
    TransitionInProgress,
    MetadataError,
    ConfigError,
)
from .metadata import FieldMetadata, TableMetadata, DatabaseMetadata, load_metadata
from .modes import MODE_LABELS, resolve_mode, available_modes
from .remapping import (
    EditBuffer,
    begin_editing,
    repair_if_incomplete,
    set_value,
    is_savable,
    save,
)
from .fk_targets import ForeignKeyCandidate, candidates, default_target
from .transitions import ModeTransitionController, TransitionResult
from .services import InMemoryMetadataService, YamlMetadataService
from .session import FieldEditingSession, SaveStatus
from .config import Settings, load_settings

__all__ = [
    "__version__",
    # Dimension model
    "Mode",
    "NoDimension",
    "ExternalDimension",
    "InternalDimension",
    "dimension_from_dict",
    "dimension_to_dict",
    # Errors
    "FieldRemapperError",
    "UnrecognizedMappingType",
    "NoForeignKeyRelation",
    "InvalidRemappingTarget",
    "IncompleteRemapping",
    "TransitionInProgress",
    "MetadataError",
    "ConfigError",
    # Metadata
    "FieldMetadata",
    "TableMetadata",
    "DatabaseMetadata",
    "load_metadata",
    # Modes
    "MODE_LABELS",
    "resolve_mode",
    "available_modes",
    # Remapping store
    "EditBuffer",
    "begin_editing",
    "repair_if_incomplete",
    "set_value",
    "is_savable",
    "save",
    # Foreign keys
    "ForeignKeyCandidate",
    "candidates",
    "default_target",
    # Transitions and sessions
    "ModeTransitionController",
    "TransitionResult",
    "InMemoryMetadataService",
    "YamlMetadataService",
    "FieldEditingSession",
    "SaveStatus",
    # Config
    "Settings",
    "load_settings",
]
