"""
Logistics Task Management
SQLAlchemy instance shared by every model module.

Model modules import ``db`` from here; ``create_app`` imports each module
so that ``db.create_all()`` and Flask-Migrate see every table.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
