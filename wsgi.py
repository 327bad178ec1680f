"""WSGI entry point for Gunicorn (``gunicorn wsgi:app``)."""
import os
import sys

# Allow running from a checkout without installing the package
sys.path.insert(0, os.path.dirname(__file__))

from app import create_app

app = create_app(os.getenv('FLASK_CONFIG', 'config.Config'))

if __name__ == "__main__":
    app.run()
