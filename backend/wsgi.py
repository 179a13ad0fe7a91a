# backend/wsgi.py
from hardware_inventory import create_app

app = create_app()
