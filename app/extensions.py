"""
Flask extensions initialization.
"""
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_sock import Sock

# Database
db = SQLAlchemy()

# Migrations
migrate = Migrate()

# WebSocket routes (/ws/notifications)
sock = Sock()
