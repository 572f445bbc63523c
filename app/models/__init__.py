"""
Training Program Provisioning Service
Shared SQLAlchemy instance.

All model modules import ``db`` from here so the application factory can
bind it once via ``db.init_app(app)``.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
