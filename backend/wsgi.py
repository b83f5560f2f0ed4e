# backend/wsgi.py
from fieldops import create_app
from fieldops.database import wait_for_database

app = create_app()


if __name__ == "__main__":
    wait_for_database(app)
    app.run(host="0.0.0.0", port=app.config["PORT"], debug=app.config["APP_ENV"] == "development")
