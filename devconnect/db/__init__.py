from devconnect.db.base import Base, get_engine, get_session_factory, init_models

__all__ = [
    "Base",
    "get_engine",
    "get_session_factory",
    "init_models",
]
