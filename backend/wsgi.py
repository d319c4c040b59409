# backend/wsgi.py
from gamestock import create_app

app = create_app()
