from doctrack.core.enums import (  # noqa: F401
    AuditAction,
    Classification,
    CommunicationUrgency,
    DocumentStatus,
    Role,
)
from doctrack.core.exceptions import (  # noqa: F401
    AllocationCollision,
    CollaboratorUnavailable,
    InvalidTransition,
    StaleSnapshot,
    TrackingError,
)
from doctrack.core.records import (  # noqa: F401
    CHECKPOINT_TITLE,
    Actor,
    AuditEntry,
    DocumentDraft,
    DocumentSnapshot,
)
