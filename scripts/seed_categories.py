#!/usr/bin/env python3
"""
Applique le catalogue de catégories Tabrima (à lancer au déploiement).
Usage:
  - `./scripts/seed_categories.py`
  - `./scripts/seed_categories.py --no-alter-schema` (échoue si la colonne icon manque)
"""
import os
import sys
import argparse

project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from tabrima.apps import create_app
from tabrima.models import db
from tabrima.seeder import CategorySeeder, SeedError


def parse_args():
    p = argparse.ArgumentParser(description='Seed des catégories Tabrima Store')
    p.add_argument('--no-alter-schema', action='store_true',
                   help="Ne pas ajouter la colonne icon si elle est absente")
    return p.parse_args()


def main():
    args = parse_args()
    app = create_app()

    with app.app_context():
        seeder = CategorySeeder(db.session, db.engine, alter_schema=not args.no_alter_schema)
        try:
            categories = seeder.seed()
        except SeedError as e:
            print(f"❌ {e.message}: {e}")
            return 1

        print(f"✅ {len(categories)} catégories en base:")
        for category in categories:
            print(f"  - {category.name} ({category.icon})")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
