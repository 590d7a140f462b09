"""
Soft Delete Mixin.

Adds a `deleted_at` timestamp column and query helpers for soft delete.
Packs, authorization projects and pack documents mark records as deleted
rather than physically removing them.

Usage:
    class Pack(SoftDeleteMixin, db.Model):
        ...

    # Soft delete
    pack.soft_delete()
    db.session.commit()

    # Default reads
    db.session.execute(select(Pack).where(Pack.not_deleted()))

    # Restore
    pack.restore()
    db.session.commit()
"""

from datetime import datetime, timezone

from authpack.models import db


class SoftDeleteMixin:
    """Mixin that adds soft delete support to any SQLAlchemy model."""

    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, default=None, index=True)

    def soft_delete(self):
        """Mark this record as deleted."""
        self.deleted_at = datetime.now(timezone.utc)

    def restore(self):
        """Restore a soft-deleted record."""
        self.deleted_at = None

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    @classmethod
    def not_deleted(cls):
        """The shared "not deleted" predicate for select() statements."""
        return cls.deleted_at.is_(None)

    @classmethod
    def query_active(cls):
        """Return a query that excludes soft-deleted records."""
        return cls.query.filter(cls.not_deleted())
