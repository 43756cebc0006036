"""Content domain: content items and their lifecycle.

Items move planned → ready → generated → published, and back from
published to generated on unpublish.  Every move is checked against the
stored status inside a write transaction.
"""

from pagesmith.content.lifecycle import ContentStateMachine, check_transition
from pagesmith.content.models import TRANSITIONS, ContentItem, ContentStatus
from pagesmith.content.store import ContentItemStore

__all__ = [
    "TRANSITIONS",
    "ContentItem",
    "ContentItemStore",
    "ContentStateMachine",
    "ContentStatus",
    "check_transition",
]
