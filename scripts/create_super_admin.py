#!/usr/bin/env python3
"""
Crée le super admin de Tabrima Store.
Usage:
  - interactif: `./scripts/create_super_admin.py`
  - non-interactif: `./scripts/create_super_admin.py --email admin@example.com --first Amina --last Tabrima --password secret123`
"""
import os
import sys
import argparse

project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from tabrima.accounts import AccountError, create_super_admin, prompt_super_admin
from tabrima.apps import create_app
from tabrima.models import User


def parse_args(argv=None):
    p = argparse.ArgumentParser(description='Créer un super-admin pour Tabrima Store')
    p.add_argument('--email', help='Email du super-admin')
    p.add_argument('--first', help='Prénom')
    p.add_argument('--last', help='Nom')
    p.add_argument('--password', help='Mot de passe (si absent, demandé en interactif)')
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    app = create_app()

    with app.app_context():
        existing = User.query.filter_by(is_super_admin=True).first()
        if existing:
            print(f"Un super-admin existe déjà: {existing.email}")
            return 0

        data = prompt_super_admin(args.first, args.last, args.email, args.password)
        try:
            create_super_admin(**data)
        except AccountError as e:
            print(f"Erreur: {e}")
            return 1
        print(f"Super-admin créé: {data['email']}")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
