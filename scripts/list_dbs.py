#!/usr/bin/env python3
"""Affiche les bases (MySQL) ou schémas visibles avec DATABASE_URL."""
import os
import sys

project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from sqlalchemy.exc import SQLAlchemyError

from tabrima.apps import create_app
from tabrima.maintenance import list_databases
from tabrima.models import db


def main():
    app = create_app()
    with app.app_context():
        try:
            names = list_databases(db.engine)
        except SQLAlchemyError as e:
            print(f"❌ Connexion impossible: {e}")
            return 1
    print('Databases:', names)
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
