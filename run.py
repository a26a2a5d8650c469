"""
Entry point for Flask.

Usage (from project root):

    flask --app run.py create-db
    flask --app run.py seed-admin --username admin --password secret
    flask --app run.py --debug run

"""

from bqcgen import create_app

# WSGI application object; `flask run` and gunicorn (run:app) look for this name.
app = create_app()

if __name__ == "__main__":
    app.run(debug=True)
