"""
Authorization Pack Service
Database models package.

All models share the single SQLAlchemy instance defined here. Model modules
are imported by the application factory so ``db.create_all()`` and Alembic
see every table.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
