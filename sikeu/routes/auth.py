from flask import Blueprint, render_template, redirect, url_for, flash, request, current_app
from flask_login import login_user, logout_user, login_required

from sikeu.auth.session import current_session
from sikeu.errors import AuthError, FetchError, PersistenceError
from sikeu.forms import LoginForm, RegisterForm, ForgotPasswordForm, ResetPasswordForm
from sikeu.services.records import UserService
from sikeu.utils.roles import home_for
from sikeu.utils.security import is_safe_url, make_reset_token, read_reset_token


auth_bp = Blueprint('auth', __name__)

RESET_SENT_MESSAGE = 'Jika email terdaftar, link reset password sudah dikirim.'


# --- ROUTE LOGIN ----
@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    session = current_session()
    if session.is_authenticated:
        home = home_for(session.role)
        if home:
            return redirect(home)
        flash('Akun Anda belum memiliki halaman dashboard. Hubungi administrator.', 'warning')

    form = LoginForm()
    if form.validate_on_submit():
        try:
            user = UserService().find_by_email(form.email.data)
        except FetchError as exc:
            current_app.logger.error("Login lookup failed: %s", exc)
            flash(exc.public_message, 'danger')
            return render_template('auth/login.html', title='Login', form=form)

        if user and user.check_password(form.password.data):
            login_user(user, remember=form.remember.data)
            current_app.logger.info("User %s signed in", user.id)

            next_page = request.args.get('next')
            if is_safe_url(next_page):
                return redirect(next_page)

            return redirect(url_for('main.index'))

        # Pesan sama untuk email tidak ada maupun password salah
        flash(AuthError.public_message, 'danger')

    return render_template('auth/login.html', title='Login', form=form)


@auth_bp.route('/register', methods=['GET', 'POST'])
def register():
    form = RegisterForm()
    if form.validate_on_submit():
        users = UserService()
        try:
            if users.find_by_email(form.email.data):
                form.email.errors.append('Email sudah terdaftar')
                return render_template('auth/register.html', title='Daftar', form=form)

            users.create_account(form.name.data, form.email.data, form.password.data)
        except (FetchError, PersistenceError) as exc:
            current_app.logger.error("Registration failed: %s", exc)
            flash('Pendaftaran gagal. Silakan coba lagi.', 'danger')
            return render_template('auth/register.html', title='Daftar', form=form)

        flash('Pendaftaran berhasil! Silakan login.', 'success')
        return redirect(url_for('auth.login'))

    return render_template('auth/register.html', title='Daftar', form=form)


@auth_bp.route('/forgot-password', methods=['GET', 'POST'])
def forgot_password():
    form = ForgotPasswordForm()
    if form.validate_on_submit():
        try:
            user = UserService().find_by_email(form.email.data)
        except FetchError as exc:
            current_app.logger.error("Password reset lookup failed: %s", exc)
            user = None

        if user:
            link = url_for('auth.reset_password', token=make_reset_token(user), _external=True)
            # Belum ada pengiriman email; link dicatat di log untuk operator.
            current_app.logger.info("Password reset link for user %s: %s", user.id, link)

        flash(RESET_SENT_MESSAGE, 'info')
        return redirect(url_for('auth.login'))

    return render_template('auth/forgot_password.html', title='Lupa Password', form=form)


@auth_bp.route('/reset-password/<token>', methods=['GET', 'POST'])
def reset_password(token):
    payload = read_reset_token(token, current_app.config['PASSWORD_RESET_MAX_AGE'])
    users = UserService()
    user = users.get(payload['id']) if payload else None

    if user is None or (user.password_hash or '')[-12:] != payload.get('pw'):
        flash('Link reset password tidak valid atau sudah kedaluwarsa.', 'danger')
        return redirect(url_for('auth.forgot_password'))

    form = ResetPasswordForm()
    if form.validate_on_submit():
        try:
            users.set_password(user.id, form.password.data)
        except PersistenceError as exc:
            current_app.logger.error("Password reset failed for user %s: %s", user.id, exc)
            flash(exc.public_message, 'danger')
            return render_template('auth/reset_password.html', title='Reset Password', form=form)

        flash('Password berhasil diperbarui. Silakan login.', 'success')
        return redirect(url_for('auth.login'))

    return render_template('auth/reset_password.html', title='Reset Password', form=form)


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return redirect(url_for('auth.login'))
