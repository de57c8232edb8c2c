"""WSGI entrypoint, e.g. ``gunicorn -k eventlet -w 1 wsgi:app`` from this directory."""

from quips.server import create_app

app, socketio = create_app()
