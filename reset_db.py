"""Drop and recreate every Neighborly table.

Wipes tasks, offers, chat and users. Refuses to run against the production
config; everywhere else it asks for confirmation first.

Usage:
    FLASK_ENV=development python reset_db.py
"""

import os
import sys

from neighborly import create_app, db


def reset_database(config_name):
    if config_name == 'production':
        print("Refusing to reset a production database. Use `flask db downgrade` instead.")
        return False

    app = create_app(config_name)
    uri = app.config['SQLALCHEMY_DATABASE_URI']

    print(f"This will DELETE ALL DATA in {uri}")
    if input("Type 'yes' to confirm: ").strip().lower() != 'yes':
        print("Aborted.")
        return False

    with app.app_context():
        db.drop_all()
        db.create_all()
        for table in db.metadata.sorted_tables:
            print(f"  recreated {table.name}")
    return True


if __name__ == '__main__':
    sys.exit(0 if reset_database(os.getenv('FLASK_ENV', 'development')) else 1)
