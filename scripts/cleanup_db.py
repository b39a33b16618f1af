#!/usr/bin/env python3
"""
Vide la table products et supprime la table héritée access_links.
Usage: `./scripts/cleanup_db.py [--yes]`
"""
import os
import sys
import argparse

project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from sqlalchemy.exc import SQLAlchemyError

from tabrima.apps import create_app
from tabrima.maintenance import cleanup_database
from tabrima.models import db


def parse_args():
    p = argparse.ArgumentParser(description='Nettoyer la base Tabrima Store')
    p.add_argument('--yes', action='store_true', help='Ne pas demander de confirmation')
    return p.parse_args()


def main():
    args = parse_args()

    if not args.yes:
        answer = input('Tous les produits seront supprimés. Continuer ? [o/N] ').strip().lower()
        if answer not in ('o', 'oui', 'y', 'yes'):
            print('Annulé')
            return 0

    app = create_app()
    with app.app_context():
        try:
            summary = cleanup_database(db.engine)
        except SQLAlchemyError as e:
            print(f"❌ Erreur pendant le nettoyage: {e}")
            return 1

    print(f"✅ Table products vidée ({summary['products_deleted']} lignes)")
    for table in summary['tables_dropped']:
        print(f"✅ Table {table} supprimée")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
