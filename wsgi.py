"""
WSGI / Flask-Migrate entry point.

Usage:
    gunicorn wsgi:app
    flask --app wsgi db upgrade
    flask --app wsgi watch-alerts --interval 30
"""

from netops import create_app

app = create_app()
