"""
WSGI entry point for the Authorization Pack Service.

Usage:
    gunicorn wsgi:app
    flask --app wsgi sync-templates
    flask --app wsgi db init        # first time only (creates migrations/)
    flask --app wsgi db migrate -m "description"
    flask --app wsgi db upgrade
"""

from authpack import create_app

app = create_app()
