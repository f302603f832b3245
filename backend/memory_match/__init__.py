from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or '*'

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from memory_match.api.teams import teams
    flask_app.register_blueprint(teams, url_prefix='/api')

    from memory_match.api.admin import admin
    flask_app.register_blueprint(admin, url_prefix='/api/admin')

    # Board store, turn coordinator, lifecycle manager and broadcast gateway
    # live on app.extensions so background tasks can reach them
    from memory_match.services.game import init_game_services
    services = init_game_services(flask_app)

    from memory_match.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @flask_app.route('/')
    def index():
        return {'message': 'Welcome to the memory match server!'}

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from memory_match.models import GameConfig
        from memory_match.services.game.deck import seed_default_deck
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            GameConfig.get()
            seed_default_deck()
            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    if flask_app.config.get('TIMER_LOOP_ENABLED') and not flask_app.config.get('TESTING'):
        from memory_match.services.game.scheduler import start_timer_loop
        start_timer_loop(flask_app, services.lifecycle)

    return flask_app
