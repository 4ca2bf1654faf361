# backend/wsgi.py
from kasse import create_app

app = create_app()
