from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from sikeu.auth.session import AuthSession
from sikeu.errors import FetchError, PermissionDenied, PersistenceError
from sikeu.extensions import db
from sikeu.models import (
    Income, IncomeCategory, IncomeStatus, PaymentMethod, ScheduleStatus, Student, StudentStatus,
    User, UserRole,
)
from sikeu.services.records import (
    IncomeService, PaymentProofService, PaymentScheduleService, StudentService, UserService,
    derive_status,
)


def student_fields(**overrides):
    fields = dict(
        nis='2501001',
        name='Andi Santoso',
        class_name='TK A',
        parent_name='Budi Santoso',
        parent_email='budi@example.com',
        parent_phone='081234567890',
        status=StudentStatus.ACTIVE,
        registration_date=date(2025, 7, 1),
        birth_date=date(2020, 3, 15),
        address='Jl. Melati No. 1',
        emergency_contact='Siti',
        emergency_phone='081298765432',
    )
    fields.update(overrides)
    return fields


def schedule_fields(**overrides):
    fields = dict(
        student_name='Andi Santoso',
        class_name='TK A',
        type='SPP Bulanan',
        amount=350000,
        due_date=date(2025, 1, 10),
        status=ScheduleStatus.UPCOMING,
        description='SPP Januari',
    )
    fields.update(overrides)
    return fields


def session_for(user_id, role):
    principal = SimpleNamespace(get_id=lambda: str(user_id), is_authenticated=True)
    return AuthSession(principal=principal, role=role, ready=True)


# =========================================================
# CRUD DASAR
# =========================================================

def test_student_dates_round_trip_as_calendar_dates(app):
    students = StudentService()
    student_id = students.create(**student_fields())
    db.session.expire_all()

    student = students.get(student_id)

    assert student.registration_date == date(2025, 7, 1)
    assert student.birth_date == date(2020, 3, 15)
    assert type(student.birth_date) is date


def test_listed_student_keeps_calendar_dates(app):
    StudentService().create(**student_fields(birth_date=date(2020, 12, 31)))
    db.session.expire_all()

    [student] = StudentService().list_all()

    assert student.birth_date == date(2020, 12, 31)
    assert student.registration_date == date(2025, 7, 1)
    assert type(student.registration_date) is date


def test_create_sets_timestamps_and_update_keeps_created_at(app):
    students = StudentService()
    student_id = students.create(**student_fields())
    created = students.get(student_id)
    created_at, updated_at = created.created_at, created.updated_at

    students.update(student_id, address='Jl. Mawar No. 2')
    db.session.expire_all()
    updated = students.get(student_id)

    assert updated.address == 'Jl. Mawar No. 2'
    assert updated.created_at == created_at
    assert updated.updated_at >= updated_at


@pytest.mark.parametrize('field', ['id', 'created_at', 'updated_at'])
def test_store_assigned_fields_are_rejected(app, field):
    with pytest.raises(ValueError):
        StudentService().create(**student_fields(**{field: 1}))


def test_list_all_is_ordered_by_display_key(app):
    students = StudentService()
    students.create(**student_fields(nis='1', name='Citra'))
    students.create(**student_fields(nis='2', name='Andi'))

    assert [s.name for s in students.list_all()] == ['Andi', 'Citra']


def test_delete_removes_record(app):
    students = StudentService()
    student_id = students.create(**student_fields())

    students.delete(student_id)

    assert students.get(student_id) is None
    assert Student.query.count() == 0


def test_update_of_missing_record_raises(app):
    with pytest.raises(PersistenceError):
        StudentService().update(999, name='Tidak Ada')


def test_write_failure_is_rolled_back(app):
    students = StudentService()
    students.create(**student_fields(nis='2501001'))

    with pytest.raises(PersistenceError):
        students.create(**student_fields(nis='2501001', name='Duplikat'))

    assert [s.name for s in students.list_all()] == ['Andi Santoso']


def test_generated_nis_uses_year_month_prefix(app):
    nis = StudentService().generate_nis(today=date(2025, 8, 17))

    assert nis.startswith('2508')
    assert len(nis) == 7
    assert nis.isdigit()


def test_generated_nis_picks_remaining_free_number(app, monkeypatch):
    students = StudentService()
    monkeypatch.setattr(students, 'nis_taken', lambda nis, exclude_id=None: True)
    monkeypatch.setattr(students, '_nis_with_prefix', lambda prefix: {f'{prefix}{n:03d}' for n in range(1000)} - {'2508417'})

    assert students.generate_nis(today=date(2025, 8, 17)) == '2508417'


def test_generated_nis_is_none_when_month_is_full(app, monkeypatch):
    students = StudentService()
    monkeypatch.setattr(students, 'nis_taken', lambda nis, exclude_id=None: True)
    monkeypatch.setattr(students, '_nis_with_prefix', lambda prefix: {f'{prefix}{n:03d}' for n in range(1000)})

    assert students.generate_nis(today=date(2025, 8, 17)) is None


def test_nis_lookup_failure_is_a_fetch_error(app):
    Student.__table__.drop(db.engine)

    with pytest.raises(FetchError):
        StudentService().nis_taken('2501001')
    with pytest.raises(FetchError):
        StudentService().generate_nis(today=date(2025, 8, 17))


def test_children_are_matched_by_parent_email(app):
    students = StudentService()
    students.create(**student_fields(nis='1', name='Andi', parent_email='Budi@Example.com'))
    students.create(**student_fields(nis='2', name='Citra', parent_email='dewi@example.com'))

    assert [s.name for s in students.children_of('budi@example.com')] == ['Andi']


def test_receipt_numbers_count_up_within_month(app):
    incomes = IncomeService()
    today = date(2025, 3, 5)
    assert incomes.next_receipt_number(today) == 'INC-2025-03-001'

    incomes.create(
        date=today, category=IncomeCategory.SPP, description='SPP Maret', amount=350000,
        student='Andi', payment_method=PaymentMethod.CASH, status=IncomeStatus.VERIFIED,
        receipt_number='INC-2025-03-001',
    )

    assert incomes.next_receipt_number(today) == 'INC-2025-03-002'
    assert Income.query.one().category is IncomeCategory.SPP


# =========================================================
# USERS
# =========================================================

def test_accounts_are_never_deleted(app, users):
    with pytest.raises(PermissionDenied):
        UserService().delete(users[UserRole.PARENT])
    assert db.session.get(User, users[UserRole.PARENT]) is not None


def test_admin_changes_another_users_role(app, users):
    admin = session_for(users[UserRole.ADMIN], UserRole.ADMIN)

    UserService().change_role(admin, users[UserRole.GURU], UserRole.BENDAHARA)

    assert db.session.get(User, users[UserRole.GURU]).role is UserRole.BENDAHARA


def test_admin_cannot_change_own_role(app, users):
    admin = session_for(users[UserRole.ADMIN], UserRole.ADMIN)

    with pytest.raises(PermissionDenied):
        UserService().change_role(admin, users[UserRole.ADMIN], UserRole.PARENT)


def test_bendahara_cannot_change_roles(app, users):
    bendahara = session_for(users[UserRole.BENDAHARA], UserRole.BENDAHARA)

    with pytest.raises(PermissionDenied):
        UserService().change_role(bendahara, users[UserRole.PARENT], UserRole.ADMIN)


def test_find_by_email_ignores_case(app, users):
    assert UserService().find_by_email('BUDI@example.com').id == users[UserRole.PARENT]


def test_payment_proofs_have_no_update_path(app):
    with pytest.raises(PermissionDenied):
        PaymentProofService().update(1, amount=1)


# =========================================================
# STATUS JADWAL
# =========================================================

def test_past_upcoming_schedule_is_overdue():
    assert derive_status(ScheduleStatus.UPCOMING, date(2025, 1, 10), today=date(2025, 1, 11)) is ScheduleStatus.OVERDUE


def test_paid_schedule_stays_paid_after_due_date():
    assert derive_status(ScheduleStatus.PAID, date(2025, 1, 10), today=date(2025, 6, 1)) is ScheduleStatus.PAID


def test_due_today_is_not_overdue():
    assert derive_status(ScheduleStatus.UPCOMING, date(2025, 1, 10), today=date(2025, 1, 10)) is ScheduleStatus.UPCOMING


def test_stored_overdue_with_future_date_is_upcoming():
    assert derive_status(ScheduleStatus.OVERDUE, date(2025, 2, 1), today=date(2025, 1, 10)) is ScheduleStatus.UPCOMING


def test_derived_status_is_not_written_back(app):
    schedules = PaymentScheduleService()
    today = date(2025, 1, 20)
    schedule_id = schedules.create(**schedule_fields(due_date=today - timedelta(days=3)))

    [item] = schedules.list_with_status(today)
    db.session.expire_all()

    assert item.status is ScheduleStatus.OVERDUE
    assert schedules.get(schedule_id).status is ScheduleStatus.UPCOMING


def test_schedules_for_students_filter_by_name(app):
    schedules = PaymentScheduleService()
    schedules.create(**schedule_fields(student_name='Andi Santoso'))
    schedules.create(**schedule_fields(student_name='Citra Lestari'))

    items = schedules.list_for_students(['andi santoso'], today=date(2025, 1, 1))

    assert [i.record.student_name for i in items] == ['Andi Santoso']
