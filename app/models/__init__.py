# Import all models to ensure they are registered with SQLAlchemy
from . import document

__all__ = [
    "document",
]
