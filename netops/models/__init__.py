"""
NetOps Console
Model package: shared Flask-SQLAlchemy handle and column helpers.

Usage:
    from netops.models import db
"""

import uuid
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    """Serialize an optional datetime for to_dict()."""
    return value.isoformat() if value else None
