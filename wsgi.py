from tabrima.apps import create_app

# Point d'entrée Gunicorn / Render
app = create_app()

if __name__ == "__main__":
    # Lancement local éventuel (non utilisé en production)
    app.run(host="0.0.0.0", port=app.config['PORT'], debug=False)
