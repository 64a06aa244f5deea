import os


class Config:
    """Base configuration"""

    # Flask
    # SECRET_KEY also derives the key for `enc:` secrets in the targets file
    SECRET_KEY = os.environ.get('SECRET_KEY')

    # Targets and host storage
    TARGETS_FILE = os.environ.get('BACKUP_CONFIG') or '/etc/odoo-backup/config.json'
    BACKUP_DIR = os.environ.get('BACKUP_DIR') or '/var/backups/odoo'

    # Logging
    LOG_DIR = os.environ.get('LOG_DIR')
    VERBOSE = False

    # Container runtime
    DOCKER_BINARY = os.environ.get('DOCKER_BINARY') or 'docker'
    DOCKER_SSH_HOST = os.environ.get('DOCKER_SSH_HOST')
    DOCKER_SSH_PORT = int(os.environ.get('DOCKER_SSH_PORT', 22))
    DOCKER_SSH_USER = os.environ.get('DOCKER_SSH_USER')
    DOCKER_SSH_PASSWORD = os.environ.get('DOCKER_SSH_PASSWORD')
    DOCKER_SSH_KEY = os.environ.get('DOCKER_SSH_KEY')

    # Scheduler
    SCHEDULER_ENABLED = True
    SCHEDULE_CRON = os.environ.get('SCHEDULE_CRON')
    SCHEDULER_TIMEZONE = os.environ.get('SCHEDULER_TIMEZONE') or 'UTC'

    # HTTP API
    API_TOKEN = os.environ.get('API_TOKEN')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True

    # Use local data directory for development
    BASE_DIR = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    DATA_DIR = os.path.join(BASE_DIR, 'data')
    TARGETS_FILE = os.environ.get('BACKUP_CONFIG') or os.path.join(DATA_DIR, 'config.json')
    BACKUP_DIR = os.environ.get('BACKUP_DIR') or os.path.join(DATA_DIR, 'backups')
    LOG_DIR = os.path.join(DATA_DIR, 'logs')


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = False
    SECRET_KEY = 'test-secret-key'
    LOG_DIR = None
    SCHEDULER_ENABLED = False
    SCHEDULE_CRON = None
    DOCKER_SSH_HOST = None
    API_TOKEN = 'test-api-token'


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': ProductionConfig
}
