import enum


class TemplateType(str, enum.Enum):
    ANNUAL = "ANNUAL"
    SEMI_ANNUAL = "SEMI_ANNUAL"
    PROBATIONARY = "PROBATIONARY"
    PROJECT = "PROJECT"


class RatingScaleType(str, enum.Enum):
    THREE_POINT = "THREE_POINT"
    FIVE_POINT = "FIVE_POINT"
    TEN_POINT = "TEN_POINT"
    CUSTOM = "CUSTOM"


class CycleStatus(str, enum.Enum):
    PLANNED = "PLANNED"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class AssignmentStatus(str, enum.Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"
    PUBLISHED = "PUBLISHED"
    ACKNOWLEDGED = "ACKNOWLEDGED"


class RecordStatus(str, enum.Enum):
    MANAGER_SUBMITTED = "MANAGER_SUBMITTED"
    HR_PUBLISHED = "HR_PUBLISHED"


class DisputeStatus(str, enum.Enum):
    OPEN = "OPEN"
    UNDER_REVIEW = "UNDER_REVIEW"
    RESOLVED = "RESOLVED"
    REJECTED = "REJECTED"


ACTIVE_DISPUTE_STATUSES = (DisputeStatus.OPEN.value, DisputeStatus.UNDER_REVIEW.value)


def sql_in(enum_cls) -> str:
    """Render an enum's values for a CHECK ... IN (...) clause."""
    return ",".join(f"'{m.value}'" for m in enum_cls)
