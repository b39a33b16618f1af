"""Opérations de maintenance de la base (utilisées par les scripts/)."""
import logging

import sqlalchemy as sa

logger = logging.getLogger(__name__)

LEGACY_TABLES = ('access_links',)


def cleanup_database(engine):
    """Vide la table products et supprime les tables héritées (access_links).

    Retourne un dict récapitulatif: lignes supprimées et tables supprimées.
    """
    dialect = engine.dialect.name
    dropped = []
    with engine.begin() as conn:
        if dialect in ('mysql', 'mariadb'):
            conn.execute(sa.text('SET FOREIGN_KEY_CHECKS = 0'))
        try:
            result = conn.execute(sa.text('DELETE FROM products'))
            deleted = result.rowcount or 0
        finally:
            if dialect in ('mysql', 'mariadb'):
                conn.execute(sa.text('SET FOREIGN_KEY_CHECKS = 1'))
        logger.info("Table products vidée (%d lignes)", deleted)

        existing = set(sa.inspect(conn).get_table_names())
        for table in LEGACY_TABLES:
            if table in existing:
                conn.execute(sa.text(f'DROP TABLE IF EXISTS {table}'))
                dropped.append(table)
                logger.info("Table %s supprimée", table)

    return {'products_deleted': deleted, 'tables_dropped': dropped}


def list_databases(engine):
    """Liste les bases (MySQL) ou schémas (PostgreSQL/SQLite) visibles."""
    if engine.dialect.name in ('mysql', 'mariadb'):
        with engine.connect() as conn:
            return [row[0] for row in conn.execute(sa.text('SHOW DATABASES'))]
    return sa.inspect(engine).get_schema_names()
