from enum import Enum


class OperationType(str, Enum):
    """Kind of mutation captured by a lineage record"""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    SYNC = "sync"


class LineageSyncStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    CONFLICT = "conflict"


class SyncEventStatus(str, Enum):
    """Sync event lifecycle: PENDING -> PROCESSING -> COMPLETED | FAILED | PARTIAL"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    PARTIAL = "partial"


class ValidationRuleType(str, Enum):
    FORMAT = "format"
    RANGE = "range"
    DEPENDENCY = "dependency"
    BUSINESS_LOGIC = "business_logic"
    CROSS_MODULE = "cross_module"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ChangeEventType(str, Enum):
    """Row change notifications delivered by the change feed"""
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class OrchestratorState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    DISPOSED = "disposed"


class ChangeFeedBackend(str, Enum):
    MEMORY = "memory"
    REDIS = "redis"
