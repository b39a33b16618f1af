import os
import logging
from logging.handlers import RotatingFileHandler
from functools import wraps

import sqlalchemy as sa
from flask import Flask, request, jsonify, session, send_from_directory, abort
from flask_cors import CORS
from flask_login import LoginManager, login_user, logout_user, login_required, current_user
from flask_migrate import Migrate
from flask_wtf import CSRFProtect
from flask_wtf.csrf import CSRFError, generate_csrf
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from config import config as config_map
from tabrima.models import db, User, Category, Product, DEFAULT_CATEGORY_ICON
from tabrima.seeder import CategorySeeder, SeedError, ReadBackFailed
from tabrima.utils.helpers import media_url, parse_bool, request_payload
from tabrima.utils.ratelimit import init_rate_limiting
from tabrima.utils.storage import save_upload, delete_upload, UploadError

csrf = CSRFProtect()
migrate = Migrate()

PRODUCTS_PER_PAGE = 12


def _configure_logging(app):
    """Logging: fichier rotatif (logs/app.log) en plus du handler Flask."""
    app.logger.setLevel(logging.INFO)
    if not app.config.get('LOG_TO_FILE'):
        return
    logs_dir = app.config['LOG_DIR']
    os.makedirs(logs_dir, exist_ok=True)
    file_handler = RotatingFileHandler(os.path.join(logs_dir, 'app.log'), maxBytes=1024*1024*5, backupCount=3)
    file_handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'))
    file_handler.setLevel(logging.INFO)
    app.logger.addHandler(file_handler)
    # Les modules tabrima.* loguent via logging.getLogger(__name__)
    logging.getLogger('tabrima').addHandler(file_handler)
    logging.getLogger('tabrima').setLevel(logging.INFO)


def json_error(message, status, error=None):
    payload = {'success': False, 'message': message}
    if error is not None:
        payload['error'] = error
    return jsonify(payload), status


def create_app(config_name=None, overrides=None):
    env = config_name or os.getenv('FLASK_ENV', 'default')
    config_obj = config_map.get(env, config_map['default'])
    overrides = dict(overrides or {})

    static_folder = overrides.get('STATIC_FOLDER', config_obj.STATIC_FOLDER)
    static_url_path = overrides.get('STATIC_URL_PATH', config_obj.STATIC_URL_PATH)

    app = Flask(__name__, static_folder=static_folder, static_url_path=static_url_path)
    app.config.from_object(config_obj)
    app.config.update(overrides)

    # Derrière un load balancer (cookies secure, IP client pour le rate limit)
    if app.config.get('TRUST_PROXY'):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)

    _configure_logging(app)

    # Initialisation des extensions (rate limit avant le contrôle CSRF)
    init_rate_limiting(app)
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    origins = [o.strip() for o in app.config.get('CORS_ALLOWED_ORIGINS', '*').split(',') if o.strip()]
    CORS(app, supports_credentials=True, origins=origins or '*')

    try:
        os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)
    except OSError as e:
        app.logger.warning(f"Impossible de créer le dossier d'uploads: {e}")

    # Ensure DB tables exist (create missing tables at startup)
    with app.app_context():
        try:
            db.create_all()
        except SQLAlchemyError as e:
            app.logger.warning(f"Impossible de créer les tables DB automatiquement: {e}")

    # Login Manager (sessions admin)
    login_manager = LoginManager()
    login_manager.init_app(app)

    @login_manager.unauthorized_handler
    def handle_unauthorized():
        return json_error('Veuillez vous connecter en tant qu\'administrateur.', 401)

    @login_manager.user_loader
    def load_user(user_id):
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None
        except SQLAlchemyError as e:
            db.session.rollback()
            app.logger.warning(f"Chargement de la session admin impossible: {e}")
            return None

    def require_permission(permission=None):
        """Decorator to require a specific permission for admin routes.

        - Super-admins bypass all checks.
        - Admins must have `is_admin` True and the requested permission in their `permissions`.
        - If `permission` is None, only `is_admin` is required (or super-admin).
        """
        def decorator(f):
            @wraps(f)
            def wrapped(*args, **kwargs):
                if not current_user.is_authenticated:
                    return login_manager.unauthorized()
                # Super admin bypass
                if current_user.is_super_admin:
                    return f(*args, **kwargs)
                if not current_user.is_active:
                    return json_error('Compte administrateur bloqué. Contactez un super admin.', 403)
                # Must be an admin
                if not current_user.is_admin:
                    return json_error('Accès réservé aux administrateurs', 403)
                # If a specific permission is requested, check it
                if permission and not current_user.has_permission(permission):
                    return json_error('Accès refusé: permission manquante', 403)
                return f(*args, **kwargs)
            return wrapped
        return decorator

    def serialize_category(category):
        data = category.to_dict()
        data['image_url'] = media_url(category.image)
        return data

    def serialize_product(product):
        data = product.to_dict()
        data['image_url'] = media_url(product.image)
        return data

    def _parse_price(raw, field):
        try:
            value = float(raw)
        except (TypeError, ValueError):
            raise ValueError(f"Le champ {field} doit être un nombre")
        if value < 0:
            raise ValueError(f"Le champ {field} doit être positif")
        return value

    # === API GÉNÉRALE ===

    @app.route('/api/health')
    def health():
        try:
            db.session.execute(sa.text('SELECT 1'))
            database = 'ok'
        except SQLAlchemyError as e:
            db.session.rollback()
            app.logger.warning(f"Base de données indisponible: {e}")
            database = 'unavailable'
        return jsonify({
            'success': True,
            'status': 'ok' if database == 'ok' else 'degraded',
            'database': database,
            'environment': app.config['ENV_NAME'],
        })

    @app.route('/api/csrf-token')
    def csrf_token():
        return jsonify({'success': True, 'csrf_token': generate_csrf()})

    # === AUTH ADMIN ===

    @app.route('/api/admin/login', methods=['POST'])
    def admin_login():
        data = request_payload(request)
        email = (data.get('email') or '').strip().lower()
        password = data.get('password') or ''
        if not email or not password:
            return json_error('Email et mot de passe obligatoires', 400)

        user = User.query.filter(
            func.lower(User.email) == email,
            (User.is_admin.is_(True) | User.is_super_admin.is_(True))
        ).first()

        # Seuls les comptes admin ou super_admin peuvent se connecter ici
        if not user or not user.check_password(password):
            return json_error('Email ou mot de passe administrateur incorrect', 401)

        # Super admin : bypass blocage pour éviter de se verrouiller soi-même
        if not user.is_super_admin and not user.is_active:
            return json_error('Compte administrateur bloqué. Contactez un super admin.', 403)

        login_user(user, remember=True, force=bool(user.is_super_admin))
        session.permanent = True
        app.logger.info(f"Connexion admin: {user.email}")
        return jsonify({
            'success': True,
            'message': 'Connexion administrateur réussie!',
            'user': user.to_dict(),
        })

    @app.route('/api/admin/logout', methods=['POST'])
    @login_required
    def admin_logout():
        logout_user()
        return jsonify({'success': True, 'message': 'Déconnexion administrateur réussie'})

    @app.route('/api/admin/me')
    @require_permission()
    def admin_me():
        return jsonify({'success': True, 'user': current_user.to_dict()})

    # === CATALOGUE PUBLIC ===

    @app.route('/api/categories')
    def list_categories():
        categories = Category.query.filter_by(is_active=True).order_by(Category.name.asc()).all()
        return jsonify({'success': True, 'categories': [serialize_category(c) for c in categories]})

    @app.route('/api/categories/<int:category_id>')
    def get_category(category_id):
        category = Category.query.filter_by(id=category_id, is_active=True).first()
        if not category:
            return json_error('Catégorie non trouvée', 404)
        return jsonify({'success': True, 'category': serialize_category(category)})

    @app.route('/api/products')
    def list_products():
        try:
            page = max(1, int(request.args.get('page', 1)))
        except (TypeError, ValueError):
            page = 1
        query = Product.query.filter_by(is_active=True)
        category_id = request.args.get('category_id', type=int)
        if category_id:
            query = query.filter_by(category_id=category_id)
        query = query.order_by(Product.created_at.desc(), Product.id.desc())
        total = query.count()
        products = query.offset((page - 1) * PRODUCTS_PER_PAGE).limit(PRODUCTS_PER_PAGE).all()
        total_pages = (total // PRODUCTS_PER_PAGE) + (1 if total % PRODUCTS_PER_PAGE else 0)
        return jsonify({
            'success': True,
            'products': [serialize_product(p) for p in products],
            'page': page,
            'total_pages': total_pages,
            'total': total,
        })

    @app.route('/api/products/<int:product_id>')
    def get_product(product_id):
        product = Product.query.filter_by(id=product_id, is_active=True).first()
        if not product:
            return json_error('Produit non trouvé', 404)
        return jsonify({'success': True, 'product': serialize_product(product)})

    # === ADMIN CATÉGORIES ===

    @app.route('/api/admin/categories')
    @require_permission('manage_categories')
    def admin_categories():
        categories = Category.query.order_by(Category.name.asc()).all()
        return jsonify({'success': True, 'categories': [serialize_category(c) for c in categories]})

    @app.route('/api/admin/categories', methods=['POST'])
    @require_permission('manage_categories')
    def admin_add_category():
        data = request_payload(request)
        name = (data.get('name') or '').strip()
        if not name:
            return json_error('Le nom de la catégorie est obligatoire', 400)

        # Unicité nom (case-insensitive)
        existing = Category.query.filter(func.lower(Category.name) == name.lower()).first()
        if existing:
            return json_error('Cette catégorie existe déjà.', 409)

        try:
            image = save_upload(request.files.get('image'), app.config['UPLOAD_FOLDER'], 'categories')
        except UploadError as e:
            return json_error(str(e), 400)

        category = Category(
            name=name,
            description=data.get('description', ''),
            icon=data.get('icon') or DEFAULT_CATEGORY_ICON,
            image=image,
            is_active=parse_bool(data.get('is_active'), default=True),
        )
        db.session.add(category)
        db.session.commit()
        app.logger.info(f"Ajout catégorie '{name}' par {current_user.email}")
        return jsonify({'success': True, 'message': 'Catégorie ajoutée avec succès',
                        'category': serialize_category(category)}), 201

    @app.route('/api/admin/categories/<int:category_id>', methods=['PUT'])
    @require_permission('manage_categories')
    def admin_edit_category(category_id):
        category = db.get_or_404(Category, category_id)
        data = request_payload(request)

        new_name = (data.get('name') or '').strip()
        # Vérifier unicité si le nom change
        if new_name and new_name.lower() != (category.name or '').lower():
            dup = Category.query.filter(func.lower(Category.name) == new_name.lower(),
                                        Category.id != category.id).first()
            if dup:
                return json_error('Une autre catégorie porte déjà ce nom.', 409)
        if new_name:
            category.name = new_name
        if 'description' in data:
            category.description = data['description']
        if 'is_active' in data:
            category.is_active = parse_bool(data['is_active'])
        category.icon = data.get('icon') or category.icon

        try:
            image = save_upload(request.files.get('image'), app.config['UPLOAD_FOLDER'], 'categories')
        except UploadError as e:
            return json_error(str(e), 400)
        if image:
            delete_upload(category.image, app.config['UPLOAD_FOLDER'])
            category.image = image

        db.session.commit()
        app.logger.info(f"Modification catégorie '{category.name}' par {current_user.email}")
        return jsonify({'success': True, 'message': 'Catégorie modifiée avec succès',
                        'category': serialize_category(category)})

    @app.route('/api/admin/categories/<int:category_id>', methods=['DELETE'])
    @require_permission('manage_categories')
    def admin_delete_category(category_id):
        category = db.get_or_404(Category, category_id)

        # Vérifier si la catégorie a des produits
        if category.products:
            return json_error('Impossible de supprimer cette catégorie car elle contient des produits', 409)

        delete_upload(category.image, app.config['UPLOAD_FOLDER'])
        db.session.delete(category)
        db.session.commit()
        app.logger.info(f"Suppression catégorie '{category.name}' par {current_user.email}")
        return jsonify({'success': True, 'message': 'Catégorie supprimée avec succès'})

    # === ADMIN PRODUITS ===

    @app.route('/api/admin/products')
    @require_permission('manage_products')
    def admin_products():
        products = Product.query.order_by(Product.created_at.desc(), Product.id.desc()).all()
        return jsonify({'success': True, 'products': [serialize_product(p) for p in products]})

    @app.route('/api/admin/products', methods=['POST'])
    @require_permission('manage_products')
    def admin_add_product():
        data = request_payload(request)
        name = (data.get('name') or '').strip()
        if not name or data.get('price') in (None, '') or not data.get('category_id'):
            return json_error('Nom, prix et catégorie sont obligatoires', 400)

        try:
            price = _parse_price(data.get('price'), 'price')
            compare_price = None
            if data.get('compare_price') not in (None, ''):
                compare_price = _parse_price(data.get('compare_price'), 'compare_price')
            quantity = int(data.get('quantity') or 0)
            category_id = int(data.get('category_id'))
        except ValueError as e:
            return json_error('Données produit invalides', 400, str(e))

        if not db.session.get(Category, category_id):
            return json_error('Catégorie introuvable', 400)

        try:
            image = save_upload(request.files.get('image'), app.config['UPLOAD_FOLDER'], 'products')
        except UploadError as e:
            return json_error(str(e), 400)

        product = Product(
            name=name,
            description=data.get('description', ''),
            price=price,
            compare_price=compare_price,
            quantity=quantity,
            image=image or data.get('image') or None,
            is_active=parse_bool(data.get('is_active'), default=True),
            category_id=category_id,
        )
        db.session.add(product)
        db.session.commit()
        app.logger.info(f"Ajout produit '{name}' par {current_user.email}")
        return jsonify({'success': True, 'message': 'Produit ajouté avec succès',
                        'product': serialize_product(product)}), 201

    @app.route('/api/admin/products/<int:product_id>', methods=['PUT'])
    @require_permission('manage_products')
    def admin_edit_product(product_id):
        product = db.get_or_404(Product, product_id)
        data = request_payload(request)

        try:
            if (data.get('name') or '').strip():
                product.name = data['name'].strip()
            if 'description' in data:
                product.description = data['description']
            if data.get('price') not in (None, ''):
                product.price = _parse_price(data['price'], 'price')
            if 'compare_price' in data:
                raw = data['compare_price']
                product.compare_price = None if raw in (None, '') else _parse_price(raw, 'compare_price')
            if data.get('quantity') not in (None, ''):
                product.quantity = int(data['quantity'])
            if data.get('category_id'):
                category_id = int(data['category_id'])
                if not db.session.get(Category, category_id):
                    return json_error('Catégorie introuvable', 400)
                product.category_id = category_id
        except ValueError as e:
            db.session.rollback()
            return json_error('Données produit invalides', 400, str(e))
        if 'is_active' in data:
            product.is_active = parse_bool(data['is_active'])

        try:
            image = save_upload(request.files.get('image'), app.config['UPLOAD_FOLDER'], 'products')
        except UploadError as e:
            db.session.rollback()
            return json_error(str(e), 400)
        if image:
            delete_upload(product.image, app.config['UPLOAD_FOLDER'])
            product.image = image

        db.session.commit()
        app.logger.info(f"Modification produit '{product.name}' par {current_user.email}")
        return jsonify({'success': True, 'message': 'Produit modifié avec succès',
                        'product': serialize_product(product)})

    @app.route('/api/admin/products/<int:product_id>', methods=['DELETE'])
    @require_permission('manage_products')
    def admin_delete_product(product_id):
        product = db.get_or_404(Product, product_id)
        delete_upload(product.image, app.config['UPLOAD_FOLDER'])
        db.session.delete(product)
        db.session.commit()
        app.logger.info(f"Suppression produit '{product.name}' par {current_user.email}")
        return jsonify({'success': True, 'message': 'Produit supprimé avec succès'})

    # === MIGRATION DES CATÉGORIES ===

    @app.route('/api/migrate-categories', methods=['POST'])
    @require_permission('manage_categories')
    def migrate_categories():
        seeder = CategorySeeder(
            db.session, db.engine,
            alter_schema=app.config.get('CATEGORY_SEED_ALTER_SCHEMA', True),
        )
        try:
            categories = seeder.seed()
        except ReadBackFailed as e:
            app.logger.error(f"Erreur relecture catégories après migration: {e}")
            return json_error(e.message, 500, str(e))
        except SeedError as e:
            app.logger.error(f"Erreur migration catégories ({type(e).__name__}): {e}")
            return json_error('Erreur lors de la migration', 500, str(e))

        return jsonify({
            'success': True,
            'message': 'Migration des catégories terminée avec succès!',
            'categories': [serialize_category(c) for c in categories],
        })

    # === PAGES ET FICHIERS STATIQUES ===

    pages_folder = app.config['PAGES_FOLDER']

    @app.route('/admin')
    def admin_page():
        return send_from_directory(pages_folder, 'admin.html')

    @app.route('/setup')
    def setup_page():
        return send_from_directory(app.static_folder, 'setup.html')

    @app.route('/access/<token>')
    def access_page(token):
        return send_from_directory(app.static_folder, 'access.html')

    # Chemins absolus /public/... de l'hébergement statique
    @app.route('/public/<path:filename>')
    def public_files(filename):
        return send_from_directory(app.static_folder, filename)

    @app.route('/', defaults={'path': ''})
    @app.route('/<path:path>')
    def spa(path):
        if path.startswith('api/'):
            abort(404)
        if path and os.path.isfile(os.path.join(app.static_folder, path)):
            return send_from_directory(app.static_folder, path)
        return send_from_directory(pages_folder, 'index.html')

    # Gestion des erreurs
    @app.errorhandler(CSRFError)
    def csrf_error(error):
        return json_error('Jeton CSRF invalide ou manquant', 400, error.description)

    @app.errorhandler(HTTPException)
    def http_error(error):
        if request.path.startswith('/api/'):
            return json_error(error.name, error.code, error.description)
        return error

    @app.errorhandler(Exception)
    def internal_error(error):
        db.session.rollback()
        app.logger.exception(f"Error: {error}")
        detail = str(error) if app.config.get('EXPOSE_ERRORS') else None
        return json_error('Internal server error', 500, detail)

    return app
