"""Context building, code scaffolding and contextual recommendations."""
from .engine import ContextEngine, sort_recommendations

__all__ = ["ContextEngine", "sort_recommendations"]
