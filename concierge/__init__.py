from concierge.db import init_db

__version__ = "0.1.0"

__all__ = ["init_db"]
