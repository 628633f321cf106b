# backend/wsgi.py
# Entry point for `flask` CLI (FLASK_APP=wsgi.py) and WSGI servers.
from tubex import create_app

app = create_app()

if __name__ == "__main__":
    app.run(host="127.0.0.1", port=5001)
