"""
Persistence package. `storage` is the process-wide DBStorage; the app
factory configures its engine and creates the tables.
"""
from models.db_storage import DBStorage

storage = DBStorage()
