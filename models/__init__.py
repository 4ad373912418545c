"""
Models package: exposes the shared DBStorage instance.

The engine is built lazily from DATABASE_URL; the Flask app calls
storage.init_app(app) to point it at the configured database and create tables.
"""
from models.db_storage import DBStorage

storage = DBStorage()
