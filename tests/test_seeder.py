"""Tests du seed idempotent des catégories."""
import pytest
import sqlalchemy as sa
from sqlalchemy import event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from tabrima.models import db, Category
from tabrima.seeder import (
    CategorySeeder,
    ICON_UPDATES,
    NEW_CATEGORIES,
    ReadBackFailed,
    SchemaUpdateFailed,
    UpsertFailed,
    ensure_icon_column,
    upsert_statement,
)

ALL_NAMES = {u.name for u in ICON_UPDATES} | {c.name for c in NEW_CATEGORIES}


def _seeder(**kwargs):
    return CategorySeeder(db.session, db.engine, **kwargs)


def _snapshot(categories):
    return [c.to_dict() for c in categories]


class TestSeed:

    def test_seeds_every_category_on_empty_table(self, app):
        with app.app_context():
            categories = _seeder().seed()
            assert {c.name for c in categories} == ALL_NAMES
            assert Category.query.count() == len(ALL_NAMES)

    def test_result_sorted_by_name(self, app):
        with app.app_context():
            db.session.add(Category(name="Zèbre", description="dernier"))
            db.session.add(Category(name="Abricot", description="premier"))
            db.session.commit()
            names = [c.name for c in _seeder().seed()]
            assert names == sorted(names)
            assert names[0] == "Abricot"

    def test_second_run_is_identical(self, app):
        with app.app_context():
            first = _snapshot(_seeder().seed())
            second = _snapshot(_seeder().seed())
            assert first == second
            assert Category.query.count() == len(ALL_NAMES)

    def test_existing_category_only_gets_new_icon(self, app):
        with app.app_context():
            db.session.add(Category(name="Parfums", description="Nos eaux de parfum", icon="old-icon"))
            db.session.commit()
            _seeder().seed()
            parfums = Category.query.filter_by(name="Parfums").one()
            assert parfums.icon == "bi-wind"
            assert parfums.description == "Nos eaux de parfum"

    def test_icon_batch_inserts_default_description(self, app):
        with app.app_context():
            _seeder().seed()
            cheveux = Category.query.filter_by(name="Cheveux").one()
            assert cheveux.description == "Gamme de produits pour Cheveux"
            assert cheveux.icon == "bi-scissors"

    def test_new_category_created(self, app):
        with app.app_context():
            assert Category.query.filter_by(name="Huiles Naturelles").first() is None
            _seeder().seed()
            huiles = Category.query.filter_by(name="Huiles Naturelles").one()
            assert huiles.description == "Huiles de massage et soins hydratants"
            assert huiles.icon == "bi-flower1"

    def test_new_category_batch_overwrites_description(self, app):
        with app.app_context():
            db.session.add(Category(name="Kits Bien-être", description="ancien texte", icon="bi-box"))
            db.session.commit()
            _seeder().seed()
            kits = Category.query.filter_by(name="Kits Bien-être").one()
            assert kits.description == "Coffrets complets pour rituels de beauté"
            assert kits.icon == "bi-gift"

    def test_unrelated_rows_untouched(self, app):
        with app.app_context():
            db.session.add(Category(name="Promotions", description="Offres", icon="bi-percent", is_active=False))
            db.session.commit()
            _seeder().seed()
            promo = Category.query.filter_by(name="Promotions").one()
            assert (promo.description, promo.icon, promo.is_active) == ("Offres", "bi-percent", False)

    def test_custom_tables(self, app):
        with app.app_context():
            categories = _seeder(icon_updates=[], new_categories=NEW_CATEGORIES[:1]).seed()
            assert [c.name for c in categories] == ["Gommages & Tabrima"]


class TestSchemaGuard:

    def test_noop_when_column_present(self, app):
        with app.app_context():
            assert ensure_icon_column(db.engine) is False
            assert ensure_icon_column(db.engine, alter=False) is False

    def test_adds_missing_icon_column(self, make_app, db_url):
        legacy = sa.create_engine(db_url)
        with legacy.begin() as conn:
            conn.execute(sa.text(
                "CREATE TABLE categories (id INTEGER PRIMARY KEY, name VARCHAR(100) NOT NULL UNIQUE, "
                "description TEXT, image VARCHAR(255), is_active BOOLEAN, created_at DATETIME)"
            ))
            conn.execute(sa.text("INSERT INTO categories (name, description) VALUES ('Parfums', 'Fait main')"))
            conn.execute(sa.text("INSERT INTO categories (name, description) VALUES ('Promotions', 'Offres')"))
        legacy.dispose()

        app = make_app()
        with app.app_context():
            categories = {c.name: c for c in _seeder().seed()}
            assert categories["Parfums"].icon == "bi-wind"
            assert categories["Parfums"].description == "Fait main"
            assert categories["Promotions"].icon == "bi-tag"
            cols = {c["name"] for c in sa.inspect(db.engine).get_columns("categories")}
            assert "icon" in cols

    def test_fail_fast_when_altering_disallowed(self, make_app, db_url):
        legacy = sa.create_engine(db_url)
        with legacy.begin() as conn:
            conn.execute(sa.text(
                "CREATE TABLE categories (id INTEGER PRIMARY KEY, name VARCHAR(100) NOT NULL UNIQUE, "
                "description TEXT, image VARCHAR(255), is_active BOOLEAN, created_at DATETIME)"
            ))
        legacy.dispose()

        app = make_app()
        with app.app_context():
            with pytest.raises(SchemaUpdateFailed):
                _seeder(alter_schema=False).seed()
            count = db.session.execute(sa.text("SELECT COUNT(*) FROM categories")).scalar()
            assert count == 0

    def test_unreachable_store(self, tmp_path):
        engine = sa.create_engine(f"sqlite:///{tmp_path / 'absent' / 'store.db'}")
        with Session(engine) as session:
            with pytest.raises(SchemaUpdateFailed) as exc_info:
                CategorySeeder(session, engine).seed()
        assert str(exc_info.value)
        engine.dispose()


class TestUpsertFailure:

    def test_failing_row_rolls_back_batch(self, app):
        with app.app_context():
            db.session.execute(sa.text(
                "CREATE TRIGGER reject_cheveux BEFORE INSERT ON categories "
                "WHEN NEW.name = 'Cheveux' BEGIN SELECT RAISE(ABORT, 'refus'); END"
            ))
            db.session.commit()

            with pytest.raises(UpsertFailed) as exc_info:
                _seeder().seed()
            assert exc_info.value.name == "Cheveux"
            assert "refus" in str(exc_info.value)
            # Les lignes précédant l'échec sont annulées avec le reste du lot
            assert Category.query.count() == 0

    def test_retry_converges_after_failure(self, app):
        with app.app_context():
            db.session.execute(sa.text(
                "CREATE TRIGGER reject_parfums BEFORE INSERT ON categories "
                "WHEN NEW.name = 'Parfums' BEGIN SELECT RAISE(ABORT, 'refus'); END"
            ))
            db.session.commit()
            with pytest.raises(UpsertFailed):
                _seeder().seed()

            db.session.execute(sa.text("DROP TRIGGER reject_parfums"))
            db.session.commit()
            categories = _seeder().seed()
            assert {c.name for c in categories} == ALL_NAMES


class TestReadBackFailure:

    def test_writes_stay_committed(self, app):
        def reject_category_select(conn, cursor, statement, parameters, context, executemany):
            if statement.lstrip().upper().startswith("SELECT") and "FROM categories" in statement:
                raise OperationalError(statement, parameters, Exception("lecture impossible"))

        with app.app_context():
            event.listen(db.engine, "before_cursor_execute", reject_category_select)
            try:
                with pytest.raises(ReadBackFailed) as exc_info:
                    _seeder().seed()
            finally:
                event.remove(db.engine, "before_cursor_execute", reject_category_select)

            assert "lecture impossible" in str(exc_info.value)
            assert "appliquées" in exc_info.value.message
            with db.engine.connect() as conn:
                names = set(conn.execute(sa.text("SELECT name FROM categories")).scalars())
            assert names == ALL_NAMES


class TestUpsertStatement:

    def test_unknown_dialect_rejected(self):
        with pytest.raises(ValueError):
            upsert_statement(Category.__table__, "oracle", {"name": "x"}, ("icon",))

    def test_mysql_uses_on_duplicate_key(self):
        from sqlalchemy.dialects import mysql
        stmt = upsert_statement(
            Category.__table__, "mysql",
            {"name": "Parfums", "description": "d", "icon": "bi-wind"}, ("icon",),
        )
        sql = str(stmt.compile(dialect=mysql.dialect()))
        assert "ON DUPLICATE KEY UPDATE" in sql
        assert "description = " not in sql.split("ON DUPLICATE KEY UPDATE")[1]

    def test_postgresql_updates_listed_columns(self):
        from sqlalchemy.dialects import postgresql
        stmt = upsert_statement(
            Category.__table__, "postgresql",
            {"name": "Huiles Naturelles", "description": "d", "icon": "bi-flower1"},
            ("description", "icon"),
        )
        sql = str(stmt.compile(dialect=postgresql.dialect()))
        assert "ON CONFLICT (name) DO UPDATE" in sql
        assert "description = excluded.description" in sql
