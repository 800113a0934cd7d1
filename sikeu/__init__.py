import logging

from flask import Flask, redirect, render_template, url_for
from config import Config
from sikeu.extensions import db, migrate, login_manager, csrf, drive_relay


def format_rupiah(value):
    if value is None:
        return 'Rp 0'
    return 'Rp ' + f"{int(value):,}".replace(',', '.')


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # 1. Logging
    level = app.config.get('LOG_LEVEL', 'INFO')
    if not app.testing:
        logging.basicConfig(level=level, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    app.logger.setLevel(level)
    logging.getLogger('sikeu').setLevel(level)

    # 2. Init Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    drive_relay.init_app(app)

    # 3. Import Models (Penting agar db.create_all mendeteksi tabel)
    from sikeu import models
    from sikeu.auth.session import current_session
    from sikeu.utils.roles import can, role_label

    # 4. Context Processor & filter template
    @app.context_processor
    def inject_helpers():
        from datetime import datetime
        return {
            'datetime': datetime,
            'role_label': role_label,
            'can': can,
            'auth': current_session(),
        }

    app.add_template_filter(format_rupiah, 'rupiah')

    # 5. User Loader (Wajib untuk Flask-Login)
    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(models.User, int(user_id))

    # 6. Registrasi Blueprint
    from sikeu.routes.auth import auth_bp
    from sikeu.routes.main import main_bp
    from sikeu.routes.admin import admin_bp
    from sikeu.routes.parent import parent_bp
    from sikeu.routes.api import api_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(main_bp)
    app.register_blueprint(admin_bp, url_prefix='/admin')
    app.register_blueprint(parent_bp, url_prefix='/parent')
    app.register_blueprint(api_bp, url_prefix='/api')

    # 7. Halaman error
    @app.errorhandler(401)
    def unauthorized(error):
        return redirect(url_for('auth.login'))

    @app.errorhandler(403)
    def forbidden(error):
        return render_template('errors/error.html', code=403, message='Anda tidak memiliki akses ke halaman ini.'), 403

    @app.errorhandler(404)
    def not_found(error):
        return render_template('errors/error.html', code=404, message='Halaman tidak ditemukan.'), 404

    return app
