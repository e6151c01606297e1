import os

from dressmart import create_app

app = create_app()

if __name__ == '__main__':
    print("\n" + "=" * 50)
    print("Starting Dressmart Backend")
    print("=" * 50)
    print(f"MongoDB: {app.config['MONGO_URI'][:60]}")
    print(f"Uploads: {os.path.abspath(app.config['UPLOAD_FOLDER'])}")
    print(f"Email: {'Configured' if app.config['MAIL_USERNAME'] else 'Disabled'}")

    port = int(os.getenv('PORT', 5000))
    print(f"\nServer running on http://localhost:{port}")
    print("=" * 50 + "\n")
    app.run(host='0.0.0.0', port=port, debug=os.getenv('FLASK_DEBUG', 'False').lower() == 'true')
