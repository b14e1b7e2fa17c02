import enum


class ShiftType(str, enum.Enum):
    NORMAL_8H = "NORMAL_8H"
    EXTENDED_9_5H = "EXTENDED_9_5H"
    OVERTIME_11H = "OVERTIME_11H"


class WorksheetStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class RecordStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class Role(str, enum.Enum):
    SUPERADMIN = "SUPERADMIN"
    ADMIN = "ADMIN"
    USER = "USER"
