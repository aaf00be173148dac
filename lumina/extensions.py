# lumina/extensions.py
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_cors import CORS

from .cache import TTLCache

db = SQLAlchemy()
migrate = Migrate()
cors = CORS()

# read-mostly catalog/settings payloads
cache = TTLCache()
