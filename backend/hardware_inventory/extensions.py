# Overview: Flask extension instances for the database and schema migrations.

import os

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# backend/migrations, independent of the working directory the CLI runs from
MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "migrations")

db = SQLAlchemy()
migrate = Migrate(directory=MIGRATIONS_DIR)
