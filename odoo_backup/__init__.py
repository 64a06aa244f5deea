import os
import logging
from logging.handlers import RotatingFileHandler
from flask import Flask


__version__ = '0.2.0'


def configure_logging(app):
    """Configure application logging"""

    # Set log level based on environment
    verbose = app.config.get('DEBUG', False) or app.config.get('VERBOSE', False)
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers = []

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
    )
    console_handler.setFormatter(console_formatter)
    handlers.append(console_handler)

    # File handler (only when a log directory is configured)
    log_dir = app.config.get('LOG_DIR')
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, 'odoo-backup.log'),
            maxBytes=10485760,  # 10MB
            backupCount=10
        )
        file_handler.setLevel(log_level)
        file_formatter = logging.Formatter(
            '[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] %(message)s'
        )
        file_handler.setFormatter(file_formatter)
        handlers.append(file_handler)

    # Configure root logger
    logging.basicConfig(level=log_level, handlers=handlers)
    logging.getLogger('odoo_backup').setLevel(log_level)

    # Configure Flask app logger
    app.logger.setLevel(log_level)

    app.logger.debug(f"Logging configured (level: {logging.getLevelName(log_level)})")


def create_app(config_name=None, overrides=None):
    """
    Flask application factory.

    Args:
        config_name: Key of odoo_backup.config.config (defaults to FLASK_ENV or 'production')
        overrides: Optional dict applied on top of the selected config
    """
    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'production')

    from odoo_backup.config import config
    app.config.from_object(config[config_name])
    if overrides:
        app.config.update(overrides)

    # Configure logging
    configure_logging(app)

    # Register blueprints
    from odoo_backup.routes import api_routes
    app.register_blueprint(api_routes.bp)

    # Health check endpoint
    @app.route('/health')
    def health():
        return {'status': 'healthy'}, 200

    # Initialize and start scheduler (only in designated worker or development child process)
    if app.config.get('SCHEDULER_ENABLED') and app.config.get('SCHEDULE_CRON'):
        from odoo_backup.scheduler import init_scheduler, start_scheduler, stop_scheduler
        import atexit

        is_reloader_child = os.environ.get('WERKZEUG_RUN_MAIN') == 'true'
        is_development = app.config.get('DEBUG', False)
        is_scheduler_worker = os.environ.get('SCHEDULER_WORKER', 'false').lower() == 'true'

        # - Development mode: Only in Flask reloader child process (not parent)
        # - Production mode: Only in designated scheduler worker (SCHEDULER_WORKER=true)
        if is_development:
            should_init_scheduler = is_reloader_child
        else:
            should_init_scheduler = is_scheduler_worker

        if should_init_scheduler:
            app.logger.info("Initializing scheduler in this process...")
            init_scheduler(app)
            start_scheduler()
            atexit.register(stop_scheduler)
        else:
            app.logger.info("Scheduler initialization skipped in this process (not designated scheduler worker)")

    return app
