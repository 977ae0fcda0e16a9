"""
Flask Application Factory
Independent bookshop directory: canonical URLs, slug index and legacy redirects.
"""
from dataclasses import dataclass
from typing import Callable

from flask import Flask
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from bookshop_directory.canonical_index import CanonicalIndexManager
from bookshop_directory.data_store import EntityStore, create_entity_store
from bookshop_directory.redirects import RedirectEngine, register_redirect_hook
from bookshop_directory.refresh_job import IndexRefreshJob

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


@dataclass
class LocatorServices:
    """Everything the canonical locator needs, owned by one app instance."""
    store: EntityStore
    manager: CanonicalIndexManager
    refresh_job: IndexRefreshJob
    engine: RedirectEngine
    index_provider: Callable


def setup_logging(app):
    """Configure logging for the application and the package loggers."""
    # Ensure log directory exists
    log_dir = Path('logs')
    log_dir.mkdir(exist_ok=True)

    # Set logging level based on config
    log_level = app.config.get('LOG_LEVEL', 'INFO')
    level = getattr(logging, log_level, logging.INFO)

    # app.logger is the "bookshop_directory" logger, so every module logger in
    # the package propagates to these handlers.
    app.logger.setLevel(level)
    if not getattr(app.logger, "_directory_handlers_installed", False):
        # Console logging (always enabled for visibility)
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        console_handler.setLevel(level)
        app.logger.addHandler(console_handler)

        # File logging (always enabled)
        file_handler = RotatingFileHandler(
            log_dir / 'app.log',
            maxBytes=10240000,  # 10MB
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            LOG_FORMAT + ' [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(level)
        app.logger.addHandler(file_handler)

        # Prevent duplicate logs
        app.logger.propagate = False
        app.logger._directory_handlers_installed = True

    app.logger.info('Bookshop directory startup')


def init_locator(app, store):
    """
    Wire the canonical locator into the app and start the index lifecycle.

    INDEX_BUILD_MODE:
        sync        build before create_app() returns
        background  build on a daemon thread; requests see "not found" until ready
        lazy        build on the first lookup
        off         never build automatically (manual refresh only)
    """
    mode = app.config.get('INDEX_BUILD_MODE', 'background')
    manager = CanonicalIndexManager(retry_seconds=app.config.get('INDEX_LAZY_RETRY_SECONDS', 60))
    refresh_job = IndexRefreshJob.from_config(app.config, manager, store, periodic=(mode != 'off'))

    if mode == 'lazy':
        def index_provider():
            return manager.ensure_built(store)
    else:
        def index_provider():
            return manager.current

    engine = RedirectEngine.from_config(app.config, index_provider=index_provider)
    register_redirect_hook(app, engine)

    app.extensions['canonical_locator'] = LocatorServices(
        store=store,
        manager=manager,
        refresh_job=refresh_job,
        engine=engine,
        index_provider=index_provider,
    )

    if mode == 'sync':
        refresh_job.run_once()
        refresh_job.schedule_next()
    elif mode == 'background':
        refresh_job.start_background_build()
    elif mode == 'lazy':
        refresh_job.schedule_next()
    elif mode != 'off':
        app.logger.warning(f"Unknown INDEX_BUILD_MODE '{mode}', index will not be built automatically")

    return app.extensions['canonical_locator']


def create_app(config_class=None, entity_store=None):
    """
    Create and configure Flask application.

    Args:
        config_class: Configuration class (defaults to DevelopmentConfig)
        entity_store: EntityStore to use instead of the one DATA_BACKEND selects

    Returns:
        Flask application instance
    """
    app = Flask(__name__)

    # Load configuration
    if config_class is None:
        from bookshop_directory.config import DevelopmentConfig
        config_class = DevelopmentConfig

    app.config.from_object(config_class)

    # Setup logging
    setup_logging(app)

    # Register blueprints
    from bookshop_directory.routes import bp as main_bp, register_locator_routes
    from bookshop_directory.errors import bp as errors_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(errors_bp)
    register_locator_routes(app)

    if entity_store is None:
        entity_store = create_entity_store(app.config)
    init_locator(app, entity_store)

    return app
