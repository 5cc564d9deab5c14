"""WSGI entry point: ``gunicorn wsgi:app``."""

from logitask import create_app

app = create_app()
