# backend/fieldops/config.py
from __future__ import annotations
import os

BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


class Config:
    # "development" or "production"; production sets the jwt cookie on login
    APP_ENV = os.environ.get("APP_ENV", "development")

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/fieldops.sqlite3 unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///fieldops.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session tokens
    JWT_SECRET = os.environ.get("JWT_SECRET", "dev-jwt-secret-change-me")
    JWT_EXPIRATION = int(os.environ.get("JWT_EXPIRATION", str(7 * 24 * 60 * 60)))  # seconds

    PORT = int(os.environ.get("PORT", "5050"))

    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", os.path.join(BACKEND_DIR, "uploads"))

    # Startup connection retry (attempt n waits base * 2**n seconds)
    DB_CONNECT_ATTEMPTS = int(os.environ.get("DB_CONNECT_ATTEMPTS", "3"))
    DB_CONNECT_BASE_DELAY = float(os.environ.get("DB_CONNECT_BASE_DELAY", "1.0"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG" if APP_ENV == "development" else "WARNING")

    # "my activities" / "team activities" look-back
    ACTIVITY_WINDOW_DAYS = int(os.environ.get("ACTIVITY_WINDOW_DAYS", "7"))

    # Browser origins allowed to call the API (admin panel dev servers by default)
    CORS_ORIGINS = [
        o.strip()
        for o in os.environ.get("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
        if o.strip()
    ]
