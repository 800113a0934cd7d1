from flask import Blueprint, render_template, request, redirect, url_for, flash, current_app
from flask_login import current_user

from sikeu.auth.session import current_session
from sikeu.decorators import action_required
from sikeu.errors import FetchError, PersistenceError
from sikeu.extensions import drive_relay
from sikeu.forms import PaymentProofForm, ContactMessageForm, PROOF_PAYMENT_TYPES, SCHOOL_BANK_ACCOUNTS
from sikeu.models import ScheduleStatus, ContactStatus
from sikeu.services.filters import filter_records
from sikeu.services.payment_proof import (
    PaymentProofSubmission, SubmissionState, GENERIC_FAILURE, SUCCESS_MESSAGE,
)
from sikeu.services.records import (
    StudentService, PaymentScheduleService, PaymentProofService, NotificationService,
    ContactMessageService,
)
from sikeu.utils.roles import SUBMIT_PAYMENT_PROOF, CONTACT_ADMIN

parent_bp = Blueprint('parent', __name__)


def _fetch(loader, *args):
    try:
        return loader(*args)
    except FetchError as exc:
        current_app.logger.error("Fetching parent data failed: %s", exc)
        flash(exc.public_message, 'danger')
        return []


def _children():
    return _fetch(StudentService().children_of, current_user.email)


def _unpaid_schedules(children):
    items = _fetch(PaymentScheduleService().list_for_students, [c.name for c in children])
    return [item for item in items if item.status != ScheduleStatus.PAID]


@parent_bp.route('')
def dashboard():
    children = _children()
    return render_template(
        'parent/dashboard.html',
        children=children,
        schedules=_unpaid_schedules(children),
        notifications=_fetch(NotificationService().list_all),
    )


@parent_bp.route('/history')
def history():
    proofs = _fetch(PaymentProofService().list_for_principal, current_user.id)
    type_filter = request.args.get('type', 'all')
    filtered = filter_records(proofs, payment_type=type_filter)
    return render_template(
        'parent/history.html',
        proofs=filtered,
        total_amount=sum(p.amount for p in filtered),
        payment_types=PROOF_PAYMENT_TYPES,
        type_filter=type_filter,
    )


@parent_bp.route('/make-payment')
def make_payment():
    return render_template(
        'parent/make_payment.html',
        schedules=_unpaid_schedules(_children()),
        bank_accounts=SCHOOL_BANK_ACCOUNTS,
    )


# '/upload' paling dalam: rule pertama yang terdaftar dipakai oleh url_for.
@parent_bp.route('/payment', methods=['GET', 'POST'])
@parent_bp.route('/upload', methods=['GET', 'POST'])
@action_required(SUBMIT_PAYMENT_PROOF)
def upload_proof():
    form = PaymentProofForm()

    if request.method == 'POST':
        result = PaymentProofSubmission(drive_relay).submit(current_session(), form)
        if result.state == SubmissionState.DONE:
            flash(SUCCESS_MESSAGE, 'success')
            # Redirect = form kembali kosong
            return redirect(url_for('parent.upload_proof'))

        if result.failure is not None:
            flash(GENERIC_FAILURE, 'danger')

    return render_template('parent/upload.html', form=form, bank_accounts=SCHOOL_BANK_ACCOUNTS)


@parent_bp.route('/contact', methods=['GET', 'POST'])
@action_required(CONTACT_ADMIN)
def contact():
    messages = ContactMessageService()
    form = ContactMessageForm()

    if form.validate_on_submit():
        try:
            messages.create(
                sender_id=current_user.id,
                subject=form.subject.data.strip(),
                category=form.category.data,
                priority=form.priority.data,
                student_name=(form.student_name.data or '').strip() or None,
                message=form.message.data.strip(),
                status=ContactStatus.SENT,
            )
        except PersistenceError as exc:
            current_app.logger.error("Saving contact message failed: %s", exc)
            flash('Gagal mengirim pesan. Silakan coba lagi.', 'danger')
        else:
            flash('Pesan berhasil dikirim! Admin akan segera merespons.', 'success')
            return redirect(url_for('parent.contact'))

    return render_template(
        'parent/contact.html',
        form=form,
        messages=_fetch(messages.list_for_sender, current_user.id),
        children=_children(),
    )
