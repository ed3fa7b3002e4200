# backend/wsgi.py
from shopsavvy import create_app

app = create_app()
