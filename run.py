import os
import sys
import signal
from dotenv import load_dotenv

# Chemins du projet (root = dossier contenant ce fichier)
project_root = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, project_root)

load_dotenv()

def create_directories(app):
    """Crée les dossiers nécessaires"""
    directories = [
        os.path.join(app.config['UPLOAD_FOLDER'], 'products'),
        os.path.join(app.config['UPLOAD_FOLDER'], 'categories'),
        app.config['PAGES_FOLDER'],
    ]

    for directory in directories:
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as e:
            print(f"⚠️ Erreur création {directory}: {e}")

def install_shutdown_handler(app):
    """Ferme proprement les connexions DB à la réception de SIGTERM."""
    from tabrima.models import db

    def _on_sigterm(signum, frame):
        app.logger.info('SIGTERM received, shutting down gracefully')
        with app.app_context():
            db.session.remove()
            db.engine.dispose()
        app.logger.info('Database connection closed')
        sys.exit(0)

    signal.signal(signal.SIGTERM, _on_sigterm)

def main():
    # Imports après configuration
    from sqlalchemy.exc import SQLAlchemyError
    from tabrima.accounts import AccountError, create_super_admin, prompt_super_admin
    from tabrima.apps import create_app
    from tabrima.models import User

    # Créer l'application
    app = create_app()
    create_directories(app)

    # Initialisation de la base de données
    with app.app_context():
        try:
            existing_super_admin = User.query.filter_by(is_super_admin=True).first()
            if existing_super_admin:
                print(f"✅ Super admin existant: {existing_super_admin.email}")
            else:
                print("\n👑 CRÉATION DU SUPER ADMINISTRATEUR")
                super_admin = create_super_admin(**prompt_super_admin())
                print(f"🎉 Super admin créé: {super_admin.email}")
        except (SQLAlchemyError, AccountError) as e:
            print(f"❌ Erreur initialisation: {e}")
            return

    install_shutdown_handler(app)

    port = app.config['PORT']
    app.logger.info(f"{app.config['SHOP_NAME']} server running on port {port}")
    app.logger.info(f"Niche: {app.config['SHOP_NICHE']}")
    app.logger.info(f"Environment: {app.config['ENV_NAME']}")
    app.logger.info(f"Admin panel: http://localhost:{port}/admin")

    try:
        app.run(host='0.0.0.0', port=port, debug=app.config.get('DEBUG', False))
    except KeyboardInterrupt:
        print("\n⏹️ Serveur arrêté par l'utilisateur")

if __name__ == '__main__':
    main()
