import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('true', '1', 'yes', 'on')


class Config:
    """Application settings read from the environment"""

    SECRET_KEY = os.getenv('SECRET_KEY', 'dressmart-dev-secret-key-change-me-2024')

    # MongoDB configuration
    MONGO_URI = os.getenv('MONGO_URI', 'mongodb://localhost:27017/dressmart')

    # Token configuration
    JWT_SECRET = os.getenv('JWT_SECRET') or SECRET_KEY
    JWT_ALGORITHM = os.getenv('JWT_ALGORITHM', 'HS256')
    JWT_EXPIRATION_HOURS = float(os.getenv('JWT_EXPIRATION_HOURS', 8))

    # Credentials
    PASSWORD_HASH_METHOD = os.getenv('PASSWORD_HASH_METHOD', 'scrypt')
    PASSWORD_MIN_LENGTH = int(os.getenv('PASSWORD_MIN_LENGTH', 6))
    ALLOW_ADMIN_REGISTRATION = env_bool('ALLOW_ADMIN_REGISTRATION', False)

    # Catalog, cart and orders
    CATALOG_WRITE_REQUIRES_ADMIN = env_bool('CATALOG_WRITE_REQUIRES_ADMIN', False)
    VERIFY_ORDER_TOTALS = env_bool('VERIFY_ORDER_TOTALS', False)
    SHIPPING_FEE = float(os.getenv('SHIPPING_FEE', 100.0))
    CART_SLOTS = int(os.getenv('CART_SLOTS', 300))

    # File upload configuration
    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', 'upload/images')
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB max file size
    ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}
    UPLOAD_COMPRESS = env_bool('UPLOAD_COMPRESS', True)
    IMAGE_MAX_WIDTH = int(os.getenv('IMAGE_MAX_WIDTH', 800))
    IMAGE_MAX_HEIGHT = int(os.getenv('IMAGE_MAX_HEIGHT', 800))
    IMAGE_QUALITY = int(os.getenv('IMAGE_QUALITY', 85))

    # Email configuration
    ORDER_NOTIFICATIONS = env_bool('ORDER_NOTIFICATIONS', True)
    MAIL_SERVER = os.getenv('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.getenv('MAIL_PORT', 587))
    MAIL_USE_TLS = env_bool('MAIL_USE_TLS', True)
    MAIL_USE_SSL = env_bool('MAIL_USE_SSL', False)
    MAIL_USERNAME = os.getenv('MAIL_USERNAME')
    MAIL_PASSWORD = os.getenv('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.getenv('MAIL_DEFAULT_SENDER', 'orders@dressmart.local')
    MAIL_SUPPRESS_SEND = env_bool('MAIL_SUPPRESS_SEND', False)

    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
