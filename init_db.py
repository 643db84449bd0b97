#!/usr/bin/env python
"""Database initialization script for the Neighborly backend.

This script creates all database tables based on the SQLAlchemy models.
Production databases should be managed with `flask db upgrade` instead.

Usage:
    python init_db.py
"""

import os
import sys

from neighborly import create_app, db


def init_database():
    """Initialize the database by creating all tables."""
    config_name = os.getenv('FLASK_ENV', 'development')
    app = create_app(config_name)

    print(f"\n{'='*60}")
    print(f"Database Initialization for {config_name.upper()} Environment")
    print(f"{'='*60}\n")

    with app.app_context():
        try:
            print("Creating database tables...")
            print(f"Database URI: {app.config['SQLALCHEMY_DATABASE_URI']}\n")

            db.create_all()

            for table in db.metadata.sorted_tables:
                print(f"  - {table.name}")

            print("\nDatabase tables created successfully!\n")
        except Exception as e:
            print(f"\nError creating tables: {e}\n")
            return False

    return True


if __name__ == '__main__':
    sys.exit(0 if init_database() else 1)
