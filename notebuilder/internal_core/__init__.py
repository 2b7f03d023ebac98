from .config import BuilderConfig, load_config
from .session_store import InMemorySessionStore

__all__ = ["BuilderConfig", "load_config", "InMemorySessionStore"]
