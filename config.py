import os
from dotenv import load_dotenv

# Muat variabel dari file .env (untuk di laptop)
load_dotenv()


class Config:
    # 1. SECRET KEY
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'kunci-rahasia-default-jika-lupa'

    # 2. DATABASE
    db_uri = os.environ.get('DATABASE_URL')

    # Render memberikan 'postgres://', SQLAlchemy butuh 'postgresql://'
    if db_uri and db_uri.startswith("postgres://"):
        db_uri = db_uri.replace("postgres://", "postgresql://", 1)

    SQLALCHEMY_DATABASE_URI = db_uri or 'sqlite:///keuangan_tk.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # 3. UPLOAD BUKTI PEMBAYARAN (Google Drive)
    # Kredensial hanya dari environment, tidak pernah dari request.
    GDRIVE_CLIENT_ID = os.environ.get('GDRIVE_CLIENT_ID')
    GDRIVE_CLIENT_SECRET = os.environ.get('GDRIVE_CLIENT_SECRET')
    GDRIVE_REDIRECT_URI = os.environ.get('GDRIVE_REDIRECT_URI')
    GDRIVE_REFRESH_TOKEN = os.environ.get('GDRIVE_REFRESH_TOKEN')
    GDRIVE_FOLDER_ID = os.environ.get('GDRIVE_FOLDER_ID') or None

    # Batas 10 MB divalidasi di form; ini batas keras request multipart.
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024

    # 4. LAIN-LAIN
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    PASSWORD_RESET_MAX_AGE = 60 * 60


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    WTF_CSRF_ENABLED = False
    GDRIVE_CLIENT_ID = 'test-client-id'
    GDRIVE_CLIENT_SECRET = 'test-client-secret'
    GDRIVE_REDIRECT_URI = 'http://localhost/oauth2callback'
    GDRIVE_REFRESH_TOKEN = 'test-refresh-token'
    GDRIVE_FOLDER_ID = 'folder-bukti'
