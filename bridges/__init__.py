"""
Bridges

Integration adapters between Notion, Discord and Google Calendar.

Philosophy:
- Every adapter is an independent, short-lived or polling process
- Classification and segmentation are pure, in-memory transformations
- All network I/O happens behind small collaborator clients
- Upserts are keyed by stable source identifiers so reruns are safe

Usage:
    from bridges.common import load_config, Item, ConversationGroup
    from bridges.archive import classify, segment, ChatExporter
    from bridges.calsync import CalendarSync
    from bridges.relay.server import app
"""

__version__ = "0.1.0"
