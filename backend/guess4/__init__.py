from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from guess4.main import main
    flask_app.register_blueprint(main)

    from guess4.api.games import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    from guess4.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Identity comes from the external provider as an opaque id header;
    # there is no server-side session or password store.
    from guess4.models import Identity

    @login_manager.request_loader
    def load_identity(request):
        user_id = (request.headers.get('X-User-Id') or '').strip()
        if not user_id:
            return None
        return Identity(user_id)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Sign in required', 'kind': 'not_authenticated'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
