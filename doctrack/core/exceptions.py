class TrackingError(Exception):
    """Base class for errors raised by the tracking core."""

    code = "tracking_error"

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details or None


class InvalidTransition(TrackingError):
    """A transition precondition does not hold for the current snapshot."""

    code = "invalid_transition"

    def __init__(self, action: str, message: str, **details):
        super().__init__(message, action=action, **details)
        self.action = action


class AllocationCollision(TrackingError):
    """Two or more documents share one reference number."""

    code = "allocation_collision"

    def __init__(self, reference_number: str, document_ids):
        ids = sorted(str(i) for i in document_ids)
        super().__init__(
            f"Reference number {reference_number} is shared by {len(ids)} documents",
            reference_number=reference_number,
            document_ids=ids,
        )
        self.reference_number = reference_number
        self.document_ids = ids


class StaleSnapshot(TrackingError):
    code = "stale_snapshot"


class CollaboratorUnavailable(TrackingError):
    code = "collaborator_unavailable"

    def __init__(self, collaborator: str, message: str):
        super().__init__(message, collaborator=collaborator)
        self.collaborator = collaborator
