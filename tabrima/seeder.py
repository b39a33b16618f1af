"""Catalogue de catégories Tabrima (créneau Body Care).

Le seeder applique deux lots d'upserts sur la table ``categories`` puis relit
l'ensemble trié par nom. Il est idempotent: deux appels successifs donnent
exactement le même résultat.

Comportement transactionnel:
- le garde de schéma (colonne ``icon``) s'exécute dans sa propre transaction;
- les lots A et B s'exécutent dans une seule transaction. La première ligne en
  échec annule tout le lot et lève ``UpsertFailed(name)``;
- si la relecture échoue, les écritures sont déjà validées (``ReadBackFailed``).
Une interruption en cours de lot laisse la base inchangée (rollback); relancer
le seed suffit à converger.
"""
import logging
from typing import NamedTuple, Sequence

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError

from tabrima.models import Category, DEFAULT_CATEGORY_ICON

logger = logging.getLogger(__name__)


class IconUpdate(NamedTuple):
    name: str
    icon: str


class CategorySeed(NamedTuple):
    name: str
    description: str
    icon: str


# Catégories historiques: seule l'icône est mise à jour, la description saisie
# à la main est conservée.
ICON_UPDATES: Sequence[IconUpdate] = (
    IconUpdate('Soins Visage', 'bi-person-hearts'),
    IconUpdate('Soins Corps', 'bi-droplet-half'),
    IconUpdate('Cheveux', 'bi-scissors'),
    IconUpdate('Parfums', 'bi-wind'),
    IconUpdate('Accessoires', 'bi-gem'),
)

# Nouvelles catégories Tabrima: description et icône font foi.
NEW_CATEGORIES: Sequence[CategorySeed] = (
    CategorySeed('Gommages & Tabrima', 'Gommages traditionnels et mélanges Tabrima', 'bi-stars'),
    CategorySeed('Huiles Naturelles', 'Huiles de massage et soins hydratants', 'bi-flower1'),
    CategorySeed('Savons Artisanaux', 'Savons naturels et gommants', 'bi-box-seam'),
    CategorySeed('Kits Bien-être', 'Coffrets complets pour rituels de beauté', 'bi-gift'),
)


def default_description(name):
    return f"Gamme de produits pour {name}"


class SeedError(Exception):
    """Erreur de base du seed des catégories."""

    message = 'Erreur lors de la migration'

    def __init__(self, detail=None):
        self.detail = detail
        super().__init__(detail or self.message)


class SchemaUpdateFailed(SeedError):
    message = 'Mise à jour du schéma des catégories impossible'


class UpsertFailed(SeedError):
    message = "Échec de l'upsert des catégories"

    def __init__(self, name=None, detail=None):
        self.name = name
        super().__init__(detail)


class ReadBackFailed(SeedError):
    message = ('Catégories écrites mais relecture impossible: '
               'les modifications ont pu être appliquées')


def upsert_statement(table, dialect_name, values, update_columns):
    """Construit un INSERT paramétré avec mise à jour sur conflit de ``name``."""
    if dialect_name in ('mysql', 'mariadb'):
        from sqlalchemy.dialects.mysql import insert
        stmt = insert(table).values(**values)
        return stmt.on_duplicate_key_update(
            **{col: stmt.inserted[col] for col in update_columns}
        )
    if dialect_name == 'postgresql':
        from sqlalchemy.dialects.postgresql import insert
    elif dialect_name == 'sqlite':
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise ValueError(f"Dialecte non supporté pour l'upsert: {dialect_name}")
    stmt = insert(table).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=[table.c.name],
        set_={col: stmt.excluded[col] for col in update_columns},
    )


def ensure_icon_column(engine, alter=True):
    """Garantit la présence de ``categories.icon`` (défaut ``bi-tag``).

    Sans effet si la colonne existe. Retourne True si la colonne a été ajoutée.
    """
    try:
        inspector = sa.inspect(engine)
        cols = {c['name'] for c in inspector.get_columns(Category.__tablename__)}
    except SQLAlchemyError as exc:
        raise SchemaUpdateFailed(str(exc)) from exc

    if 'icon' in cols:
        return False
    if not alter:
        raise SchemaUpdateFailed(
            "La colonne categories.icon est absente: exécutez 'flask db upgrade'"
        )

    # Le défaut est une constante interne, pas une saisie utilisateur
    ddl = sa.text(
        f"ALTER TABLE {Category.__tablename__} "
        f"ADD COLUMN icon VARCHAR(50) DEFAULT '{DEFAULT_CATEGORY_ICON}'"
    )
    try:
        with engine.begin() as conn:
            conn.execute(ddl)
    except SQLAlchemyError as exc:
        raise SchemaUpdateFailed(str(exc)) from exc
    logger.info("Colonne categories.icon ajoutée (défaut %s)", DEFAULT_CATEGORY_ICON)
    return True


class CategorySeeder:
    """Applique le catalogue de catégories sur la base fournie."""

    def __init__(self, session, engine, alter_schema=True,
                 icon_updates=ICON_UPDATES, new_categories=NEW_CATEGORIES):
        self.session = session
        self.engine = engine
        self.alter_schema = alter_schema
        self.icon_updates = tuple(icon_updates)
        self.new_categories = tuple(new_categories)

    def _upsert(self, values, update_columns):
        stmt = upsert_statement(
            Category.__table__, self.engine.dialect.name, values, update_columns
        )
        try:
            self.session.execute(stmt)
        except (SQLAlchemyError, ValueError) as exc:
            self.session.rollback()
            raise UpsertFailed(values['name'], str(exc)) from exc

    def apply_batches(self):
        for update in self.icon_updates:
            self._upsert(
                {'name': update.name,
                 'description': default_description(update.name),
                 'icon': update.icon},
                ('icon',),
            )
        for category in self.new_categories:
            self._upsert(
                {'name': category.name,
                 'description': category.description,
                 'icon': category.icon},
                ('description', 'icon'),
            )
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise UpsertFailed(detail=f"Validation de la transaction impossible: {exc}") from exc

    def read_back(self):
        try:
            # Les lignes upsertées en SQL brut ne sont pas dans l'identity map
            self.session.expire_all()
            return list(
                self.session.execute(
                    sa.select(Category).order_by(Category.name.asc())
                ).scalars()
            )
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise ReadBackFailed(str(exc)) from exc

    def seed(self):
        ensure_icon_column(self.engine, alter=self.alter_schema)
        self.apply_batches()
        categories = self.read_back()
        logger.info(
            "Seed catégories terminé: %d upserts, %d catégories en base",
            len(self.icon_updates) + len(self.new_categories),
            len(categories),
        )
        return categories
