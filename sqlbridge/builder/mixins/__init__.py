from sqlbridge.builder.mixins._returning import ReturningClauseMixin
from sqlbridge.builder.mixins._where import WhereClauseMixin

__all__ = ("ReturningClauseMixin", "WhereClauseMixin")
