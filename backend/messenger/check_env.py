#!/usr/bin/env python3
"""
Startup environment check for deployment
"""
import sys

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from messenger.config import Settings


def mask_database_url(database_url: str) -> str:
    """Render a database URL with its password hidden"""
    try:
        return make_url(database_url).render_as_string(hide_password=True)
    except ArgumentError:
        return "<unparseable URL>"


def check_environment(settings=None):
    """Print the effective environment"""
    settings = settings or Settings()

    print("=" * 50)
    print("Messenger Backend - Environment Check")
    print("=" * 50)

    # Check Python version
    python_version = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    print(f"✓ Python version: {python_version}")

    # Check DATABASE_URL
    if settings.database_url:
        print(f"✓ DATABASE_URL is set: {mask_database_url(settings.database_url)[:80]}")
    else:
        print("! DATABASE_URL is NOT set, messages will be kept in memory only")

    print(f"✓ Listening on {settings.host}:{settings.port}")
    print(f"✓ Allowed origins: {', '.join(settings.allowed_origins)}")

    print("=" * 50)
    print("Environment check finished")
    print("=" * 50)


if __name__ == "__main__":
    check_environment()
