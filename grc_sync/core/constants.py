# App info
APP_NAME = "GRC Sync"
API_PREFIX = "/api/v1"

# Tables whose changes are propagated across modules
WATCHED_TABLES = [
    "incident_logs",
    "governance_policies",
    "controls",
    "kri_definitions",
    "business_functions",
    "third_party_profiles",
]

# table -> module that owns the data
TABLE_SOURCE_MODULES = {
    "incident_logs": "incident_management",
    "governance_policies": "governance",
    "controls": "controls_kri",
    "kri_definitions": "controls_kri",
    "business_functions": "business_continuity",
    "third_party_profiles": "third_party_risk",
}

# table -> modules that must be told about a change
TABLE_TARGET_MODULES = {
    "incident_logs": ["governance", "controls", "risk_appetite", "business_continuity"],
    "governance_policies": ["controls_kri", "incident_management", "third_party_risk"],
    "controls": ["incident_management", "governance", "risk_appetite"],
    "kri_definitions": ["risk_appetite", "incident_management", "governance"],
    "business_functions": ["risk_appetite", "incident_management", "third_party_risk"],
    "third_party_profiles": ["business_continuity", "risk_appetite", "governance"],
}

UNKNOWN_MODULE = "unknown"
MANUAL_SOURCE_MODULE = "manual"
MANUAL_SYNC_EVENT_TYPE = "manual_sync"
DATA_CHANGE_EVENT_TYPE = "data_change"

# Validation rules targeting this table name apply everywhere
WILDCARD_TABLE = "*"

# Fields never copied into a lineage field-changes snapshot
LINEAGE_EXCLUDED_FIELDS = frozenset({"id", "created_at", "updated_at"})

DEFAULT_MAX_RETRIES = 3

# Quality scoring
MAX_SCORE = 100
VIOLATION_PENALTY = 20
ACCURACY_SCORE_INVALID = 80
VALIDITY_SCORE_INVALID = 75
CONSISTENCY_SCORE_PLACEHOLDER = 95

# Default pagination
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500
