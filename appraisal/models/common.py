import enum


class RecordStatus(str, enum.Enum):
    """Lifecycle of reference data: groups, calendars and calendar periods."""
    ACTIVE = "active"
    INACTIVE = "inactive"
