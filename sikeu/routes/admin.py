from datetime import date
from flask import Blueprint, render_template, redirect, url_for, flash, request, current_app, abort, Response

from sikeu.auth.session import current_session
from sikeu.decorators import action_required
from sikeu.errors import FetchError, PermissionDenied, PersistenceError
from sikeu.forms import (
    StudentForm, ClassForm, UserForm, NewUserForm, IncomeForm, ExpenseForm,
    PaymentScheduleForm, NotificationForm, EXPENSE_CATEGORIES,
)
from sikeu.models import (
    UserRole, StudentStatus, IncomeCategory, IncomeStatus, ExpenseStatus, ScheduleStatus,
)
from sikeu.services.filters import filter_records
from sikeu.services.records import (
    StudentService, ClassService, UserService, IncomeService, ExpenseService,
    PaymentScheduleService, NotificationService,
)
from sikeu.services import reports
from sikeu.utils.roles import (
    can, MANAGE_STUDENTS, MANAGE_CLASSES, MANAGE_USERS, MANAGE_SCHEDULE, MANAGE_INCOME,
    MANAGE_EXPENSES, MANAGE_NOTIFICATIONS, EXPORT_REPORTS,
)

admin_bp = Blueprint('admin', __name__)

FORM_EXCLUDE = ('submit', 'csrf_token', 'password', 'confirm_password')


def _fetch(loader, *args):
    """Ambil data untuk halaman; kalau gagal tampilkan list kosong + pesan."""
    try:
        return loader(*args)
    except FetchError as exc:
        current_app.logger.error("Fetching data failed: %s", exc)
        flash(exc.public_message, 'danger')
        return []


def _form_fields(form):
    return {field.name: field.data for field in form if field.name not in FORM_EXCLUDE}


def _save(action, success_message):
    try:
        action()
    except PersistenceError as exc:
        current_app.logger.error("Saving data failed: %s", exc)
        flash(exc.public_message, 'danger')
        return False
    flash(success_message, 'success')
    return True


def _class_choices(current=None):
    names = _fetch(ClassService().names)
    if current and current not in names:
        # Kelas lama yang sudah tidak ada di tabel classes tetap bisa dipilih
        names = [current] + names
    return [(name, name) for name in names]


def _render_form(form, title, back_endpoint):
    return render_template('admin/form.html', form=form, title=title, back_url=url_for(back_endpoint))


# =========================================================
# 1. DASHBOARD
# =========================================================

@admin_bp.route('')
def dashboard():
    today = date.today()
    incomes = _fetch(IncomeService().list_all)
    expenses = _fetch(ExpenseService().list_all)
    students = _fetch(StudentService().list_all)
    notifications = _fetch(NotificationService().list_all)

    return render_template(
        'admin/dashboard.html',
        summary=reports.dashboard_summary(incomes, expenses, students, today),
        series=reports.monthly_series(incomes, expenses, 6, today),
        income_by_category=reports.category_breakdown(incomes, label=lambda c: c.label),
        recent_incomes=incomes[:5],
        notifications=notifications[:5],
    )


# =========================================================
# 2. DATA SISWA
# =========================================================

@admin_bp.route('/students')
def manage_students():
    students = _fetch(StudentService().list_all)
    query = (request.args.get('q') or '').strip()
    class_filter = request.args.get('class', 'all')
    status_filter = request.args.get('status', 'all')

    filtered = filter_records(
        students,
        search=query,
        search_fields=('name', 'nis', 'parent_name', 'parent_email'),
        class_name=class_filter,
        status=status_filter,
    )
    return render_template(
        'admin/students.html',
        students=filtered,
        total=len(students),
        active_count=sum(1 for s in students if s.status == StudentStatus.ACTIVE),
        class_names=sorted({s.class_name for s in students}),
        statuses=StudentStatus,
        query=query,
        class_filter=class_filter,
        status_filter=status_filter,
    )


def _student_form_valid(form, students, exclude_id=None):
    if not form.nis.data:
        return True
    try:
        taken = students.nis_taken(form.nis.data, exclude_id=exclude_id)
    except FetchError as exc:
        flash(exc.public_message, 'danger')
        return False
    if taken:
        form.nis.errors.append('NIS sudah digunakan siswa lain')
        return False
    return True


def _student_fields(form):
    fields = _form_fields(form)
    fields['nis'] = fields['nis'] or None
    return fields


@admin_bp.route('/students/new', methods=['GET', 'POST'])
@action_required(MANAGE_STUDENTS)
def add_student():
    students = StudentService()
    form = StudentForm()
    form.class_name.choices = _class_choices()

    if request.method == 'GET':
        try:
            form.nis.data = students.generate_nis()
        except FetchError as exc:
            # Tanpa usulan NIS, admin tetap bisa mengisi manual
            flash(exc.public_message, 'danger')

    if form.validate_on_submit() and _student_form_valid(form, students):
        if _save(lambda: students.create(**_student_fields(form)),
                 f'Siswa {form.name.data} berhasil ditambahkan.'):
            return redirect(url_for('admin.manage_students'))

    return _render_form(form, 'Tambah Siswa', 'admin.manage_students')


@admin_bp.route('/students/<int:student_id>/edit', methods=['GET', 'POST'])
@action_required(MANAGE_STUDENTS)
def edit_student(student_id):
    students = StudentService()
    student = students.get_or_404(student_id)
    form = StudentForm(obj=student)
    form.class_name.choices = _class_choices(student.class_name)

    if form.validate_on_submit() and _student_form_valid(form, students, exclude_id=student.id):
        if _save(lambda: students.update(student.id, **_student_fields(form)),
                 f'Data siswa {form.name.data} berhasil diperbarui.'):
            return redirect(url_for('admin.manage_students'))

    return _render_form(form, 'Edit Siswa', 'admin.manage_students')


@admin_bp.route('/students/<int:student_id>/delete', methods=['POST'])
@action_required(MANAGE_STUDENTS)
def delete_student(student_id):
    _save(lambda: StudentService().delete(student_id), 'Data siswa berhasil dihapus.')
    return redirect(url_for('admin.manage_students'))


# =========================================================
# 3. KELAS
# =========================================================

@admin_bp.route('/classes')
def manage_classes():
    classes = _fetch(ClassService().list_all)
    total_students = sum(c.student_count for c in classes)
    total_capacity = sum(c.capacity for c in classes)
    return render_template(
        'admin/classes.html',
        classes=classes,
        total_students=total_students,
        total_capacity=total_capacity,
        fill_percent=round(total_students * 100 / total_capacity) if total_capacity else 0,
    )


@admin_bp.route('/classes/new', methods=['GET', 'POST'])
@action_required(MANAGE_CLASSES)
def add_class():
    form = ClassForm()
    if form.validate_on_submit():
        fields = _form_fields(form)
        fields['student_count'] = fields['student_count'] or 0
        if _save(lambda: ClassService().create(**fields), f'Kelas {form.name.data} berhasil dibuat.'):
            return redirect(url_for('admin.manage_classes'))

    return _render_form(form, 'Tambah Kelas', 'admin.manage_classes')


@admin_bp.route('/classes/<int:class_id>/edit', methods=['GET', 'POST'])
@action_required(MANAGE_CLASSES)
def edit_class(class_id):
    classes = ClassService()
    record = classes.get_or_404(class_id)
    form = ClassForm(obj=record)
    if form.validate_on_submit():
        fields = _form_fields(form)
        fields['student_count'] = fields['student_count'] or 0
        if _save(lambda: classes.update(record.id, **fields), f'Kelas {form.name.data} berhasil diperbarui.'):
            return redirect(url_for('admin.manage_classes'))

    return _render_form(form, 'Edit Kelas', 'admin.manage_classes')


@admin_bp.route('/classes/<int:class_id>/delete', methods=['POST'])
@action_required(MANAGE_CLASSES)
def delete_class(class_id):
    _save(lambda: ClassService().delete(class_id), 'Kelas berhasil dihapus.')
    return redirect(url_for('admin.manage_classes'))


# =========================================================
# 4. USERS
# =========================================================

@admin_bp.route('/users')
@action_required(MANAGE_USERS)
def manage_users():
    users = _fetch(UserService().list_all)
    query = (request.args.get('q') or '').strip()
    role_filter = request.args.get('role', 'all')
    return render_template(
        'admin/users.html',
        users=filter_records(users, search=query, search_fields=('name', 'email'), role=role_filter),
        role_counts={role: sum(1 for u in users if u.role == role) for role in UserRole},
        query=query,
        role_filter=role_filter,
    )


@admin_bp.route('/users/new', methods=['GET', 'POST'])
@action_required(MANAGE_USERS)
def add_user():
    users = UserService()
    form = NewUserForm()
    if form.validate_on_submit():
        if _fetch(users.find_by_email, form.email.data):
            form.email.errors.append('Email sudah terdaftar')
        elif _save(lambda: users.create_account(form.name.data, form.email.data, form.password.data, form.role.data),
                   f'User {form.name.data} berhasil dibuat.'):
            return redirect(url_for('admin.manage_users'))

    return _render_form(form, 'Tambah User', 'admin.manage_users')


@admin_bp.route('/users/<int:user_id>/edit', methods=['GET', 'POST'])
@action_required(MANAGE_USERS)
def edit_user(user_id):
    users = UserService()
    user = users.get_or_404(user_id)
    form = UserForm(obj=user)
    if form.validate_on_submit():
        existing = _fetch(users.find_by_email, form.email.data)
        if existing and existing.id != user.id:
            form.email.errors.append('Email sudah terdaftar')
            return _render_form(form, 'Edit User', 'admin.manage_users')

        new_role = form.role.data
        try:
            if new_role != user.role:
                users.change_role(current_session(), user.id, new_role)
            users.update(user.id, name=form.name.data.strip(), email=form.email.data.strip().lower())
        except PermissionDenied as exc:
            current_app.logger.warning("Role change rejected for user %s: %s", user.id, exc)
            flash(exc.public_message, 'danger')
            return _render_form(form, 'Edit User', 'admin.manage_users')
        except PersistenceError as exc:
            current_app.logger.error("Updating user %s failed: %s", user.id, exc)
            flash(exc.public_message, 'danger')
            return _render_form(form, 'Edit User', 'admin.manage_users')

        flash(f'User {form.name.data} berhasil diperbarui.', 'success')
        return redirect(url_for('admin.manage_users'))

    return _render_form(form, 'Edit User', 'admin.manage_users')


# =========================================================
# 5. JADWAL PEMBAYARAN
# =========================================================

@admin_bp.route('/schedule')
def manage_schedule():
    items = _fetch(PaymentScheduleService().list_with_status)
    query = (request.args.get('q') or '').strip().lower()
    status_filter = request.args.get('status', 'all')

    filtered = [
        item for item in items
        if (not query or query in item.record.student_name.lower() or query in item.record.type.lower())
        and (status_filter == 'all' or item.status.value == status_filter)
    ]
    return render_template(
        'admin/schedule.html',
        items=filtered,
        status_counts={status: sum(1 for i in items if i.status == status) for status in ScheduleStatus},
        statuses=ScheduleStatus,
        query=query,
        status_filter=status_filter,
    )


@admin_bp.route('/schedule/new', methods=['GET', 'POST'])
@action_required(MANAGE_SCHEDULE)
def add_schedule():
    form = PaymentScheduleForm()
    form.class_name.choices = _class_choices()
    if form.validate_on_submit():
        if _save(lambda: PaymentScheduleService().create(**_form_fields(form)),
                 'Jadwal pembayaran berhasil dibuat.'):
            return redirect(url_for('admin.manage_schedule'))

    return _render_form(form, 'Tambah Jadwal Pembayaran', 'admin.manage_schedule')


@admin_bp.route('/schedule/<int:schedule_id>/edit', methods=['GET', 'POST'])
@action_required(MANAGE_SCHEDULE)
def edit_schedule(schedule_id):
    schedules = PaymentScheduleService()
    record = schedules.get_or_404(schedule_id)
    form = PaymentScheduleForm(obj=record)
    form.class_name.choices = _class_choices(record.class_name)
    if form.validate_on_submit():
        if _save(lambda: schedules.update(record.id, **_form_fields(form)),
                 'Jadwal pembayaran berhasil diperbarui.'):
            return redirect(url_for('admin.manage_schedule'))

    return _render_form(form, 'Edit Jadwal Pembayaran', 'admin.manage_schedule')


@admin_bp.route('/schedule/<int:schedule_id>/delete', methods=['POST'])
@action_required(MANAGE_SCHEDULE)
def delete_schedule(schedule_id):
    _save(lambda: PaymentScheduleService().delete(schedule_id), 'Jadwal pembayaran berhasil dihapus.')
    return redirect(url_for('admin.manage_schedule'))


# =========================================================
# 6. PEMASUKAN
# =========================================================

@admin_bp.route('/income')
def manage_income():
    incomes = _fetch(IncomeService().list_all)
    query = (request.args.get('q') or '').strip()
    category_filter = request.args.get('category', 'all')
    status_filter = request.args.get('status', 'all')
    return render_template(
        'admin/income.html',
        incomes=filter_records(
            incomes,
            search=query,
            search_fields=('description', 'student', 'receipt_number'),
            category=category_filter,
            status=status_filter,
        ),
        total_amount=sum(i.amount for i in incomes),
        verified_count=sum(1 for i in incomes if i.status == IncomeStatus.VERIFIED),
        pending_count=sum(1 for i in incomes if i.status == IncomeStatus.PENDING),
        categories=IncomeCategory,
        statuses=IncomeStatus,
        query=query,
        category_filter=category_filter,
        status_filter=status_filter,
    )


@admin_bp.route('/income/new', methods=['GET', 'POST'])
@action_required(MANAGE_INCOME)
def add_income():
    incomes = IncomeService()
    form = IncomeForm()
    if request.method == 'GET':
        form.receipt_number.data = incomes.next_receipt_number()

    if form.validate_on_submit():
        if _save(lambda: incomes.create(**_form_fields(form)), 'Pemasukan berhasil dicatat.'):
            return redirect(url_for('admin.manage_income'))

    return _render_form(form, 'Tambah Pemasukan', 'admin.manage_income')


@admin_bp.route('/income/<int:income_id>/edit', methods=['GET', 'POST'])
@action_required(MANAGE_INCOME)
def edit_income(income_id):
    incomes = IncomeService()
    record = incomes.get_or_404(income_id)
    form = IncomeForm(obj=record)
    if form.validate_on_submit():
        if _save(lambda: incomes.update(record.id, **_form_fields(form)), 'Pemasukan berhasil diperbarui.'):
            return redirect(url_for('admin.manage_income'))

    return _render_form(form, 'Edit Pemasukan', 'admin.manage_income')


@admin_bp.route('/income/<int:income_id>/delete', methods=['POST'])
@action_required(MANAGE_INCOME)
def delete_income(income_id):
    _save(lambda: IncomeService().delete(income_id), 'Pemasukan berhasil dihapus.')
    return redirect(url_for('admin.manage_income'))


# =========================================================
# 7. PENGELUARAN
# =========================================================

@admin_bp.route('/expenses')
def manage_expenses():
    expenses = _fetch(ExpenseService().list_all)
    query = (request.args.get('q') or '').strip()
    category_filter = request.args.get('category', 'all')
    status_filter = request.args.get('status', 'all')
    return render_template(
        'admin/expenses.html',
        expenses=filter_records(
            expenses,
            search=query,
            search_fields=('description', 'notes'),
            category=category_filter,
            status=status_filter,
        ),
        total_amount=sum(e.amount for e in expenses),
        approved_count=sum(1 for e in expenses if e.status == ExpenseStatus.APPROVED),
        pending_count=sum(1 for e in expenses if e.status == ExpenseStatus.PENDING),
        categories=EXPENSE_CATEGORIES,
        statuses=ExpenseStatus,
        query=query,
        category_filter=category_filter,
        status_filter=status_filter,
    )


@admin_bp.route('/expenses/new', methods=['GET', 'POST'])
@action_required(MANAGE_EXPENSES)
def add_expense():
    form = ExpenseForm()
    if form.validate_on_submit():
        if _save(lambda: ExpenseService().create(**_form_fields(form)), 'Pengeluaran berhasil dicatat.'):
            return redirect(url_for('admin.manage_expenses'))

    return _render_form(form, 'Tambah Pengeluaran', 'admin.manage_expenses')


@admin_bp.route('/expenses/<int:expense_id>/edit', methods=['GET', 'POST'])
@action_required(MANAGE_EXPENSES)
def edit_expense(expense_id):
    expenses = ExpenseService()
    record = expenses.get_or_404(expense_id)
    form = ExpenseForm(obj=record)
    if form.validate_on_submit():
        if _save(lambda: expenses.update(record.id, **_form_fields(form)), 'Pengeluaran berhasil diperbarui.'):
            return redirect(url_for('admin.manage_expenses'))

    return _render_form(form, 'Edit Pengeluaran', 'admin.manage_expenses')


@admin_bp.route('/expenses/<int:expense_id>/delete', methods=['POST'])
@action_required(MANAGE_EXPENSES)
def delete_expense(expense_id):
    _save(lambda: ExpenseService().delete(expense_id), 'Pengeluaran berhasil dihapus.')
    return redirect(url_for('admin.manage_expenses'))


# =========================================================
# 8. LAPORAN
# =========================================================

@admin_bp.route('/reports')
def reports_page():
    period = request.args.get('period', '6months')
    months = reports.PERIODS.get(period, 6)
    incomes = _fetch(IncomeService().list_all)
    expenses = _fetch(ExpenseService().list_all)
    students = _fetch(StudentService().list_all)

    return render_template(
        'admin/reports.html',
        period=period,
        summary=reports.dashboard_summary(incomes, expenses, students),
        series=reports.monthly_series(incomes, expenses, months),
        income_by_category=reports.category_breakdown(incomes, label=lambda c: c.label),
        expense_by_category=reports.category_breakdown(expenses),
    )


EXPORT_COLUMNS = {
    'incomes': [
        ('Tanggal', 'date'), ('No. Kwitansi', 'receipt_number'), ('Siswa', 'student'),
        ('Kategori', 'category'), ('Keterangan', 'description'), ('Metode', 'payment_method'),
        ('Status', 'status'), ('Jumlah', 'amount'),
    ],
    'expenses': [
        ('Tanggal', 'date'), ('Kategori', 'category'), ('Keterangan', 'description'),
        ('Status', 'status'), ('Jumlah', 'amount'),
    ],
    'monthly': [
        ('Bulan', 'month'), ('Pemasukan', 'pemasukan'), ('Pengeluaran', 'pengeluaran'), ('Saldo', 'saldo'),
    ],
}


@admin_bp.route('/reports/export/<kind>.csv')
@action_required(EXPORT_REPORTS)
def export_report(kind):
    if kind not in EXPORT_COLUMNS:
        abort(404)

    if kind == 'incomes':
        rows = _fetch(IncomeService().list_all)
    elif kind == 'expenses':
        rows = _fetch(ExpenseService().list_all)
    else:
        months = reports.PERIODS.get(request.args.get('period'), 6)
        rows = reports.monthly_series(_fetch(IncomeService().list_all), _fetch(ExpenseService().list_all), months)

    content = reports.export_csv(rows, EXPORT_COLUMNS[kind])
    filename = f"laporan-{kind}-{date.today().isoformat()}.csv"
    return Response(
        content,
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={filename}'},
    )


# =========================================================
# 9. NOTIFIKASI
# =========================================================

@admin_bp.route('/notifications', methods=['GET', 'POST'])
def manage_notifications():
    notifications = NotificationService()
    form = NotificationForm()
    if form.validate_on_submit():
        if not can(current_session().role, MANAGE_NOTIFICATIONS):
            abort(403)
        if _save(lambda: notifications.create(title=form.title.data.strip(), message=form.message.data.strip()),
                 'Notifikasi berhasil dikirim.'):
            return redirect(url_for('admin.manage_notifications'))

    return render_template(
        'admin/notifications.html',
        form=form,
        notifications=_fetch(notifications.list_all),
        can_manage=can(current_session().role, MANAGE_NOTIFICATIONS),
    )


@admin_bp.route('/notifications/<int:notification_id>/delete', methods=['POST'])
@action_required(MANAGE_NOTIFICATIONS)
def delete_notification(notification_id):
    _save(lambda: NotificationService().delete(notification_id), 'Notifikasi berhasil dihapus.')
    return redirect(url_for('admin.manage_notifications'))
