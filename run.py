"""
Checkmate Development Server
"""
import os

from app import create_app

app = create_app()

if __name__ == "__main__":
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=app.config['ENVIRONMENT'] == 'development',
        use_reloader=True
    )
