"""Création du compte super admin depuis le terminal (run.py, scripts/)."""
import logging
from getpass import getpass

from sqlalchemy import func

from tabrima.models import db, User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class AccountError(ValueError):
    """Données de compte refusées."""


def create_super_admin(email, first_name, last_name, password):
    """Crée et enregistre un super admin. Lève AccountError si les données sont invalides."""
    email = (email or '').strip().lower()
    first_name = (first_name or '').strip()
    last_name = (last_name or '').strip()
    if not first_name or not last_name:
        raise AccountError('Le prénom et le nom sont obligatoires')
    if '@' not in email:
        raise AccountError('Email invalide')
    if len(password or '') < MIN_PASSWORD_LENGTH:
        raise AccountError(f'Le mot de passe doit faire au moins {MIN_PASSWORD_LENGTH} caractères')
    if User.query.filter(func.lower(User.email) == email).first():
        raise AccountError('Un utilisateur avec cet email existe déjà')

    user = User(email=email, first_name=first_name, last_name=last_name,
                is_admin=True, is_super_admin=True)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    logger.info("Super admin créé: %s", email)
    return user


def prompt_super_admin(first_name=None, last_name=None, email=None, password=None,
                       ask=input, ask_secret=getpass, say=print):
    """Complète en interactif les champs manquants et retourne un dict prêt pour create_super_admin."""
    while not first_name:
        first_name = ask('Prénom du super admin: ').strip()
    while not last_name:
        last_name = ask('Nom du super admin: ').strip()
    while not email or '@' not in email:
        email = ask('Email du super admin: ').strip()

    while not password:
        pw = ask_secret('Mot de passe: ')
        if len(pw) < MIN_PASSWORD_LENGTH:
            say(f'Le mot de passe doit faire au moins {MIN_PASSWORD_LENGTH} caractères')
            continue
        if pw != ask_secret('Confirmer le mot de passe: '):
            say('Les mots de passe ne correspondent pas, réessayez')
            continue
        password = pw

    return {'first_name': first_name, 'last_name': last_name,
            'email': email.lower(), 'password': password}
