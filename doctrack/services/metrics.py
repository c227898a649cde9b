from prometheus_client import Counter

TRANSITIONS = Counter(
    "doctrack_transitions_total",
    "Document transitions applied",
    ["action"],
)
REJECTED_TRANSITIONS = Counter(
    "doctrack_rejected_transitions_total",
    "Document transitions rejected by a failed precondition",
    ["action"],
)
ALLOCATION_COLLISIONS = Counter(
    "doctrack_allocation_collisions_total",
    "Reference numbers found shared by more than one document",
)
SUMMARIZER_FAILURES = Counter(
    "doctrack_summarizer_failures_total",
    "Summarizer calls that failed or returned an unusable payload",
)
