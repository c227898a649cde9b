import enum


class DocumentStatus(enum.Enum):
    incoming = "INCOMING"
    outgoing = "OUTGOING"
    processing = "PROCESSING"
    completed = "COMPLETED"
    archived = "ARCHIVED"
    returned = "RETURNED"


class Role(enum.Enum):
    admin = "ADMIN"
    user = "USER"
    message_center = "MESSAGE CENTER"


class Classification(enum.Enum):
    simple = "Simple Transaction"
    complex = "Complex Transaction"
    highly_technical = "Highly Technical Transaction"


class CommunicationUrgency(enum.Enum):
    regular = "Regular"
    priority = "Priority"
    urgent = "Urgent"

    @property
    def weight(self) -> int:
        return _URGENCY_WEIGHTS[self]


_URGENCY_WEIGHTS = {
    CommunicationUrgency.regular: 1,
    CommunicationUrgency.priority: 2,
    CommunicationUrgency.urgent: 3,
}


class AuditAction(enum.Enum):
    created = "created"
    forwarded = "forwarded"
    received = "received"
    received_returned = "received_returned"
    returned = "returned"
    remarks_updated = "remarks_updated"
    completed = "completed"
    archived = "archived"

    @classmethod
    def from_label(cls, label: str) -> "AuditAction | None":
        """Recover the tag of a display label written without one.

        Older log rows carry only the free-text action. The order of the
        checks matters: "Received (Returned)" must not be read as a return.
        """
        text = (label or "").strip().lower()
        if text.startswith("received (returned)"):
            return cls.received_returned
        if text.startswith("received"):
            return cls.received
        if text.startswith("returned"):
            return cls.returned
        if text.startswith("forwarded"):
            return cls.forwarded
        if "created" in text:
            return cls.created
        if text.startswith("remarks updated"):
            return cls.remarks_updated
        if text.startswith("process completed"):
            return cls.completed
        if "archived" in text:
            return cls.archived
        return None
