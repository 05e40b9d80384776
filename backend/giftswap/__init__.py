from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from giftswap.main import main
    flask_app.register_blueprint(main)

    from giftswap.api.voting import voting
    flask_app.register_blueprint(voting, url_prefix='/api')

    from giftswap.api.admin import admin
    flask_app.register_blueprint(admin, url_prefix='/api/admin')

    # Every domain error becomes a tagged JSON error result
    from giftswap.exceptions import GiftSwapError

    @flask_app.errorhandler(GiftSwapError)
    def handle_giftswap_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    from giftswap.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    from giftswap.models import Host

    @login_manager.user_loader
    def load_user(host_id):
        return db.session.get(Host, int(host_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Host login required', 'code': 'host_login_required'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database with the host account."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            host = Host(username=flask_app.config['HOST_USERNAME'])
            host.set_password(flask_app.config['HOST_PASSWORD'])
            db.session.add(host)

            db.session.commit()
            print('Database has been reset and the host account seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
