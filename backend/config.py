"""
Configuration settings for the Roofing Reports application.
"""

import os

# Base directory
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Database configuration (supports Docker override via environment variable)
DATABASE_PATH = os.getenv('DATABASE_PATH', os.path.join(BASE_DIR, 'roofing_reports.db'))
DATABASE_URL = f'sqlite:///{DATABASE_PATH}'

# Object storage for photos, thumbnails, PDFs and signatures
STORAGE_FOLDER = os.getenv('STORAGE_FOLDER', os.path.join(BASE_DIR, 'storage'))
STORAGE_PUBLIC_URL = os.getenv('STORAGE_PUBLIC_URL', '/media').rstrip('/')

# Upload configuration
MAX_CONTENT_LENGTH = 50 * 1024 * 1024  # 50MB max request size
MAX_PHOTO_SIZE = 20 * 1024 * 1024  # 20MB per photo
ALLOWED_PHOTO_EXTENSIONS = {'jpg', 'jpeg', 'png', 'heic', 'webp'}

# Ensure folders exist
os.makedirs(STORAGE_FOLDER, exist_ok=True)
os.makedirs(os.path.dirname(DATABASE_PATH), exist_ok=True) if os.path.dirname(DATABASE_PATH) else None

# Identity provider. The provider authenticates the session and forwards the
# external user id; when a shared secret is configured the id must be signed.
AUTH_USER_HEADER = os.getenv('AUTH_USER_HEADER', 'X-Identity-User')
AUTH_SIGNATURE_HEADER = os.getenv('AUTH_SIGNATURE_HEADER', 'X-Identity-Signature')
AUTH_SHARED_SECRET = os.getenv('AUTH_SHARED_SECRET', '')

# Outbound email
EMAIL_ENABLED = os.getenv('EMAIL_ENABLED', 'false').lower() == 'true'
SMTP_HOST = os.getenv('SMTP_HOST', 'localhost')
SMTP_PORT = int(os.getenv('SMTP_PORT', '25'))
SMTP_USER = os.getenv('SMTP_USER', '')
SMTP_PASSWORD = os.getenv('SMTP_PASSWORD', '')
EMAIL_FROM = os.getenv('EMAIL_FROM', 'reports@ranz.org.nz')
REVIEWER_NOTIFICATION_EMAIL = os.getenv('REVIEWER_NOTIFICATION_EMAIL', '')

APP_BASE_URL = os.getenv('APP_BASE_URL', 'http://localhost:3000').rstrip('/')

# Complainant details used on LBP complaints
ORGANISATION_NAME = os.getenv('RANZ_NAME', 'Roofing Association of New Zealand')
ORGANISATION_ADDRESS = os.getenv('RANZ_ADDRESS', '')
ORGANISATION_PHONE = os.getenv('RANZ_PHONE', '')
ORGANISATION_EMAIL = os.getenv('RANZ_EMAIL', '')
ORGANISATION_RELATION = 'Third-party inspector'

# Building Practitioners Board
BPB_NAME = 'Building Practitioners Board'
BPB_COMPLAINTS_EMAIL = os.getenv('BPB_COMPLAINTS_EMAIL', 'complaints@lbp.govt.nz')

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
