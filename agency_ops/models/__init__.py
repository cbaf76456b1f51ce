"""
Agency Ops
Model registry — shared Flask-SQLAlchemy handle.

Usage:
    from agency_ops.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
