from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect

from sikeu.storage.drive import DriveRelay

db = SQLAlchemy()
migrate = Migrate()
csrf = CSRFProtect()
drive_relay = DriveRelay()
login_manager = LoginManager()
login_manager.login_view = 'auth.login'  # Jika belum login, lempar ke sini
login_manager.login_message = 'Silakan login terlebih dahulu.'
login_manager.login_message_category = 'info'
