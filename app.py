import os
import logging
import logging.config
from pathlib import Path

from flask import Flask

import config as app_config
from config import (
    CORS_ORIGINS,
    DB_CONNECT_TIMEOUT_SECONDS,
    IGDB_TIMEOUT_SECONDS,
    IGDB_USER_AGENT,
    JWT_EXP_SECONDS,
    JWT_SECRET,
    LOG_FILE,
    MAX_UPLOAD_BYTES,
    TWITCH_ACCESS_TOKEN,
    TWITCH_CLIENT_ID,
    TWITCH_CLIENT_SECRET,
    TWITCH_TOKEN_FILE,
    UPLOAD_DIR,
)
from db import utils as db_utils
from igdb.client import IGDBClient
from init import initialize_app
from routes import auth as routes_auth
from routes import friends as routes_friends
from routes import games as routes_games
from routes import health as routes_health
from routes import messages as routes_messages
from routes import posts as routes_posts
from routes import users as routes_users

logger = logging.getLogger(__name__)

igdb_api_client = IGDBClient(
    client_id=TWITCH_CLIENT_ID,
    client_secret=TWITCH_CLIENT_SECRET,
    user_agent=IGDB_USER_AGENT,
    timeout=IGDB_TIMEOUT_SECONDS,
    token_store_path=TWITCH_TOKEN_FILE,
    seed_token=TWITCH_ACCESS_TOKEN or None,
)


def _determine_log_level(flask_app: Flask) -> int:
    if flask_app.debug:
        return logging.DEBUG
    if os.environ.get('FLASK_DEBUG', '').lower() in {'1', 'true', 'yes', 'on'}:
        return logging.DEBUG
    return logging.INFO


def _configure_logging(flask_app: Flask) -> None:
    log_level = _determine_log_level(flask_app)
    log_path = Path(LOG_FILE)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass

    for handler in list(flask_app.logger.handlers):
        flask_app.logger.removeHandler(handler)

    logging.config.dictConfig(
        {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'standard': {
                    'format': '%(asctime)s %(levelname)s [%(name)s] %(message)s',
                    'datefmt': '%Y-%m-%d %H:%M:%S',
                }
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'formatter': 'standard',
                    'level': log_level,
                    'stream': 'ext://sys.stdout',
                },
                'file': {
                    'class': 'logging.handlers.RotatingFileHandler',
                    'formatter': 'standard',
                    'level': logging.DEBUG,
                    'filename': os.fspath(log_path),
                    'maxBytes': 5 * 1024 * 1024,
                    'backupCount': 5,
                    'encoding': 'utf-8',
                },
            },
            'root': {
                'level': log_level,
                'handlers': ['console', 'file'],
            },
        }
    )

    flask_app.logger = logging.getLogger(flask_app.import_name)
    flask_app.logger.setLevel(log_level)
    logger.setLevel(log_level)


app = Flask(__name__)
app.config.update(
    JWT_SECRET=JWT_SECRET,
    JWT_EXP_SECONDS=JWT_EXP_SECONDS,
    MAX_CONTENT_LENGTH=MAX_UPLOAD_BYTES,
    UPLOAD_DIR=UPLOAD_DIR,
)

_configure_logging(app)
app_config.validate_igdb_credentials()


def ensure_dirs() -> None:
    os.makedirs(UPLOAD_DIR, exist_ok=True)


def _db_connection_factory() -> db_utils.DatabaseEngine:
    return db_utils.build_engine_from_dsn(
        app_config.get_db_dsn(), timeout=DB_CONNECT_TIMEOUT_SECONDS
    )


def get_db() -> db_utils.DatabaseEngine:
    return db_utils.get_db()


# initial load
db = initialize_app(
    ensure_dirs=ensure_dirs,
    connection_factory=_db_connection_factory,
)


_blueprints_configured = False


def configure_blueprints(flask_app: Flask) -> None:
    global _blueprints_configured

    routes_auth.configure({
        'get_db': get_db,
        'jwt_secret': JWT_SECRET,
        'jwt_ttl_seconds': JWT_EXP_SECONDS,
    })
    routes_users.configure({
        'get_db': get_db,
        'upload_dir': UPLOAD_DIR,
    })
    routes_friends.configure({'get_db': get_db})
    routes_messages.configure({'get_db': get_db})
    routes_posts.configure({
        'get_db': get_db,
        'get_catalog_client': lambda: igdb_api_client,
    })
    routes_games.configure({
        'get_catalog_client': lambda: igdb_api_client,
    })
    routes_health.configure({'get_db': get_db})

    if _blueprints_configured:
        return

    for blueprint in (
        routes_auth.auth_blueprint,
        routes_users.users_blueprint,
        routes_friends.friends_blueprint,
        routes_messages.messages_blueprint,
        routes_posts.posts_blueprint,
        routes_games.games_blueprint,
        routes_health.health_blueprint,
    ):
        if blueprint.name not in flask_app.blueprints:
            flask_app.register_blueprint(blueprint)

    _blueprints_configured = True


from web.app_factory import create_app

app = create_app(
    app,
    configure_blueprints=configure_blueprints,
    settings={'CORS_ORIGINS': CORS_ORIGINS},
)


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=app_config.PORT, debug=True)
