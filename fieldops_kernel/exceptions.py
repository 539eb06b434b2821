"""
Typed exception hierarchy for the field operations kernel.

Every error has a typed class (catch by type, not message), a ``code``
class attribute (machine-readable, API-safe), and carries its context as
attributes rather than only in the message string.

    FieldOpsError (base)
    |
    +-- ConfigError
    |   +-- InvalidConfigError
    |
    +-- RecordError
    |   +-- ArchivedRecordNotFoundError
    |   +-- UnsupportedArchiveKindError
    |   +-- LeadNotFoundError
    |
    +-- SnapshotError
        +-- SnapshotIncompleteError

Category  | Code                        | When Raised
----------|-----------------------------|-----------------------------------------
Config    | INVALID_CONFIG              | Config file missing keys or bad values
----------|-----------------------------|-----------------------------------------
Record    | ARCHIVED_RECORD_NOT_FOUND   | Restore/purge of a record not in archive
          | UNSUPPORTED_ARCHIVE_KIND    | Archive kind other than job/customer
          | LEAD_NOT_FOUND              | Follow-up requested for an unknown lead
----------|-----------------------------|-----------------------------------------
Snapshot  | SNAPSHOT_INCOMPLETE         | Report requested before both inputs load

The derived-view engines raise none of these: missing or malformed numeric
fields coalesce to zero, and an empty join is a valid result.
"""


class FieldOpsError(Exception):
    """
    Base exception for all field operations errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "FIELDOPS_ERROR"


# Configuration exceptions


class ConfigError(FieldOpsError):
    """Base exception for configuration errors."""

    code: str = "CONFIG_ERROR"


class InvalidConfigError(ConfigError):
    """A configuration source could not be parsed into a valid config."""

    code: str = "INVALID_CONFIG"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid configuration in {source}: {reason}")


# Record exceptions


class RecordError(FieldOpsError):
    """Base exception for record lookup and mutation errors."""

    code: str = "RECORD_ERROR"


class ArchivedRecordNotFoundError(RecordError):
    """No soft-deleted record with the given id exists."""

    code: str = "ARCHIVED_RECORD_NOT_FOUND"

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"No archived {kind} with id {record_id}")


class UnsupportedArchiveKindError(RecordError):
    """The archive only holds jobs and customers."""

    code: str = "UNSUPPORTED_ARCHIVE_KIND"

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"Unsupported archive kind: {kind}")


class LeadNotFoundError(RecordError):
    """No non-deleted project with the given id is in the mirror."""

    code: str = "LEAD_NOT_FOUND"

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"No lead for project {project_id}")


# Snapshot exceptions


class SnapshotError(FieldOpsError):
    """Base exception for derived-view snapshot errors."""

    code: str = "SNAPSHOT_ERROR"


class SnapshotIncompleteError(SnapshotError):
    """A derived view was forced before all of its inputs were loaded."""

    code: str = "SNAPSHOT_INCOMPLETE"

    def __init__(self, view: str, missing: tuple[str, ...]):
        self.view = view
        self.missing = missing
        super().__init__(
            f"{view} cannot be computed; missing inputs: {', '.join(missing)}"
        )
