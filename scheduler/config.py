import os


def _optional_int(name: str):
    value = os.getenv(name)
    return int(value) if value not in (None, '') else None


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-prod')
    
    # Database
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///scheduler.db')
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    
    # Redis (optional, events are only logged without it)
    REDIS_URL = os.getenv('REDIS_URL')
    
    # Engine
    RANDOM_SEED = _optional_int('RANDOM_SEED')
    DEFAULT_BRACKET_SIZE = int(os.getenv('DEFAULT_BRACKET_SIZE', '16'))
    DEFAULT_QUALIFYING_ROUNDS = int(os.getenv('DEFAULT_QUALIFYING_ROUNDS', '5'))
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG')


class ProductionConfig(Config):
    DEBUG = False


class TestingConfig(Config):
    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    REDIS_URL = None
    RANDOM_SEED = 1234


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
