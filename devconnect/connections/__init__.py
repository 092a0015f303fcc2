from devconnect.connections.engine import ConnectionEngine
from devconnect.connections.schemas import ConnectionStatusView, ConnectionView, RelationshipRecord

__all__ = [
    "ConnectionEngine",
    "ConnectionStatusView",
    "ConnectionView",
    "RelationshipRecord",
]
