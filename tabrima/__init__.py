# tabrima/__init__.py
from .apps import create_app
from .models import db

__all__ = ['create_app', 'db']
