from dataclasses import dataclass, field


@dataclass(frozen=True)
class QueueMessage:
    """One delivery from a work queue; receipt_handle acknowledges it."""

    body: str
    receipt_handle: str
    queue_url: str = ""
    attributes: dict[str, str] = field(default_factory=dict)
