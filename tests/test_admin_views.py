from datetime import date

from sikeu.extensions import db
from sikeu.models import (
    ClassRecord, Income, IncomeCategory, IncomeStatus, Notification, PaymentMethod, Student, User, UserRole,
)

STUDENT_FORM = {
    'nis': '2501001', 'name': 'Andi Santoso', 'class_name': 'TK A', 'status': 'active',
    'birth_date': '2020-03-15', 'registration_date': '2025-07-01', 'address': 'Jl. Melati No. 1',
    'parent_name': 'Budi Santoso', 'parent_email': 'budi@example.com', 'parent_phone': '081234567890',
    'emergency_contact': 'Siti', 'emergency_phone': '081298765432', 'medical_notes': '',
}


def add_class(name='TK A'):
    db.session.add(ClassRecord(name=name, teacher='Bu Sari', academic_year='2025/2026', capacity=20))
    db.session.commit()


def test_admin_dashboard_renders(client, login):
    login(UserRole.ADMIN)

    response = client.get('/admin')

    assert response.status_code == 200
    assert 'Saldo' in response.get_data(as_text=True)


def test_admin_creates_student_with_class_from_classes_table(client, login):
    add_class()
    login(UserRole.ADMIN)

    response = client.post('/admin/students/new', data=STUDENT_FORM)

    assert response.status_code == 302
    student = Student.query.one()
    assert student.class_name == 'TK A'
    assert student.birth_date == date(2020, 3, 15)


def test_student_list_search_filters_rows(client, login):
    add_class()
    login(UserRole.ADMIN)
    client.post('/admin/students/new', data=STUDENT_FORM, follow_redirects=True)
    client.post('/admin/students/new', data=dict(STUDENT_FORM, nis='2501002', name='Citra Lestari'),
                follow_redirects=True)

    page = client.get('/admin/students?q=citra').get_data(as_text=True)

    assert 'Citra Lestari' in page
    assert 'Andi Santoso' not in page


def test_duplicate_nis_is_a_field_error(client, login):
    add_class()
    login(UserRole.ADMIN)
    client.post('/admin/students/new', data=STUDENT_FORM)

    response = client.post('/admin/students/new', data=dict(STUDENT_FORM, name='Lain'))

    assert 'NIS sudah digunakan siswa lain' in response.get_data(as_text=True)
    assert Student.query.count() == 1


def test_admin_deletes_student(client, login):
    add_class()
    login(UserRole.ADMIN)
    client.post('/admin/students/new', data=STUDENT_FORM)
    student_id = Student.query.one().id

    client.post(f'/admin/students/{student_id}/delete')

    assert Student.query.count() == 0


def test_bendahara_cannot_write_students_or_manage_users(client, login):
    add_class()
    login(UserRole.BENDAHARA)

    assert client.post('/admin/students/new', data=STUDENT_FORM).status_code == 403
    assert client.get('/admin/users').status_code == 403
    assert Student.query.count() == 0


def test_bendahara_records_income(client, login):
    login(UserRole.BENDAHARA)

    response = client.post('/admin/income/new', data={
        'date': '2025-01-05', 'category': 'spp', 'description': 'SPP Januari', 'amount': '350000',
        'student': 'Andi Santoso', 'payment_method': 'transfer', 'status': 'verified',
        'receipt_number': 'INC-2025-01-001',
    })

    assert response.status_code == 302
    income = Income.query.one()
    assert income.category is IncomeCategory.SPP
    assert income.payment_method is PaymentMethod.TRANSFER


def test_zero_income_is_not_saved(client, login):
    login(UserRole.ADMIN)

    response = client.post('/admin/income/new', data={
        'date': '2025-01-05', 'category': 'spp', 'description': 'SPP', 'amount': '0',
        'student': 'Andi', 'payment_method': 'cash', 'status': 'pending', 'receipt_number': 'INC-1',
    })

    assert response.status_code == 200
    assert 'Jumlah harus lebih dari 0' in response.get_data(as_text=True)
    assert Income.query.count() == 0


def test_new_income_form_proposes_receipt_number(client, login):
    login(UserRole.ADMIN)

    page = client.get('/admin/income/new').get_data(as_text=True)

    today = date.today()
    assert f'INC-{today.year}-{today.month:02d}-001' in page


def test_admin_cannot_change_own_role(client, login, users):
    login(UserRole.ADMIN)

    response = client.post(f'/admin/users/{users[UserRole.ADMIN]}/edit', data={
        'name': 'Admin', 'email': 'admin@tk.sch.id', 'role': 'parent',
    })

    assert 'Anda tidak dapat mengubah role akun Anda sendiri.' in response.get_data(as_text=True)
    db.session.expire_all()
    assert db.session.get(User, users[UserRole.ADMIN]).role is UserRole.ADMIN


def test_admin_changes_another_users_role(client, login, users):
    login(UserRole.ADMIN)

    response = client.post(f'/admin/users/{users[UserRole.GURU]}/edit', data={
        'name': 'Bu Sari', 'email': 'guru@tk.sch.id', 'role': 'bendahara',
    })

    assert response.status_code == 302
    db.session.expire_all()
    user = db.session.get(User, users[UserRole.GURU])
    assert user.role is UserRole.BENDAHARA
    assert user.name == 'Bu Sari'


def test_admin_creates_user_with_password(client, login):
    login(UserRole.ADMIN)

    response = client.post('/admin/users/new', data={
        'name': 'Guru Baru', 'email': 'baru@tk.sch.id', 'role': 'guru',
        'password': 'rahasia1', 'confirm_password': 'rahasia1',
    })

    assert response.status_code == 302
    user = User.query.filter_by(email='baru@tk.sch.id').one()
    assert user.role is UserRole.GURU
    assert user.check_password('rahasia1')


def test_income_csv_export(client, login):
    db.session.add(Income(
        date=date(2025, 1, 5), category=IncomeCategory.SPP, description='SPP Januari', amount=350000,
        student='Andi', payment_method=PaymentMethod.CASH, status=IncomeStatus.VERIFIED,
        receipt_number='INC-2025-01-001',
    ))
    db.session.commit()
    login(UserRole.BENDAHARA)

    response = client.get('/admin/reports/export/incomes.csv')

    assert response.status_code == 200
    assert response.mimetype == 'text/csv'
    text = response.get_data(as_text=True)
    assert text.splitlines()[0].startswith('Tanggal,No. Kwitansi')
    assert 'INC-2025-01-001' in text


def test_unknown_export_kind_is_not_found(client, login):
    login(UserRole.ADMIN)

    assert client.get('/admin/reports/export/gaji.csv').status_code == 404


def test_reports_page_supports_twelve_months(client, login):
    login(UserRole.ADMIN)

    page = client.get('/admin/reports?period=12months').get_data(as_text=True)

    assert page.count('<tr><td>') >= 12


def test_admin_posts_and_parent_reads_notification(client, login):
    login(UserRole.ADMIN)
    client.post('/admin/notifications', data={'title': 'Libur Sekolah', 'message': 'Sekolah libur tanggal 17.'})
    assert Notification.query.count() == 1

    client.post('/logout')
    login(UserRole.PARENT)
    page = client.get('/parent').get_data(as_text=True)

    assert 'Libur Sekolah' in page


def test_parent_sends_contact_message(client, login, users):
    login(UserRole.PARENT)

    response = client.post('/parent/contact', data={
        'subject': 'Tanya SPP', 'category': 'payment', 'priority': 'normal',
        'message': 'Apakah SPP bulan ini sudah diterima?',
    })

    assert response.status_code == 302
    page = client.get('/parent/contact').get_data(as_text=True)
    assert 'Tanya SPP' in page
    assert 'Terkirim' in page


def test_student_list_survives_fetch_failure(client, login):
    login(UserRole.ADMIN)
    Student.__table__.drop(db.engine)

    response = client.get('/admin/students')

    page = response.get_data(as_text=True)
    assert response.status_code == 200
    assert 'Gagal memuat data.' in page


def test_new_student_form_renders_without_nis_proposal_on_fetch_failure(client, login):
    login(UserRole.ADMIN)
    Student.__table__.drop(db.engine)

    response = client.get('/admin/students/new')

    assert response.status_code == 200
    assert 'Gagal memuat data.' in response.get_data(as_text=True)
