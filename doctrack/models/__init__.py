from doctrack.models.tracking import (  # noqa: F401
    Department,
    DocumentLog,
    Person,
    TrackedDocument,
    UserSession,
)
