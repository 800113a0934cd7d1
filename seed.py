from datetime import date, timedelta

from sikeu import create_app
from sikeu.extensions import db
from sikeu.models import (
    User, UserRole, Student, StudentStatus, ClassRecord, Income, IncomeCategory,
    PaymentMethod, IncomeStatus, Expense, ExpenseStatus, PaymentSchedule, ScheduleStatus,
    Notification,
)

app = create_app()

with app.app_context():
    print("Menghapus database lama...")
    db.drop_all()

    print("Membuat tabel database baru...")
    db.create_all()

    today = date.today()

    # ============================================
    # 1. USERS
    # ============================================
    print("Membuat user (Admin, Bendahara, Guru, Orang Tua)...")

    accounts = [
        ('Administrator', 'admin@tk.sch.id', 'admin123', UserRole.ADMIN),
        ('Bendahara TK', 'bendahara@tk.sch.id', 'bendahara123', UserRole.BENDAHARA),
        ('Bu Sari', 'guru@tk.sch.id', 'guru123', UserRole.GURU),
        ('Budi Santoso', 'budi@example.com', 'parent123', UserRole.PARENT),
    ]
    for name, email, password, role in accounts:
        user = User(name=name, email=email, role=role)
        user.set_password(password)
        db.session.add(user)
    db.session.commit()

    # ============================================
    # 2. KELAS & SISWA
    # ============================================
    print("Membuat kelas dan siswa...")

    db.session.add_all([
        ClassRecord(name='TK A', teacher='Bu Sari', student_count=1, academic_year='2025/2026', capacity=20,
                    description='Usia 4-5 tahun'),
        ClassRecord(name='TK B', teacher='Bu Rina', student_count=1, academic_year='2025/2026', capacity=20,
                    description='Usia 5-6 tahun'),
        ClassRecord(name='Daycare', teacher='Bu Tini', student_count=0, academic_year='2025/2026', capacity=10),
    ])

    db.session.add_all([
        Student(
            nis=today.strftime('%y%m') + '001', name='Andi Santoso', class_name='TK A',
            parent_name='Budi Santoso', parent_email='budi@example.com', parent_phone='081234567890',
            status=StudentStatus.ACTIVE, registration_date=date(today.year, 7, 1), birth_date=date(2020, 3, 15),
            address='Jl. Melati No. 1', emergency_contact='Siti Santoso', emergency_phone='081298765432',
        ),
        Student(
            nis=today.strftime('%y%m') + '002', name='Citra Lestari', class_name='TK B',
            parent_name='Dewi Lestari', parent_email='dewi@example.com', parent_phone='081311112222',
            status=StudentStatus.ACTIVE, registration_date=date(today.year, 7, 1), birth_date=date(2019, 8, 2),
            address='Jl. Mawar No. 5', emergency_contact='Eko Lestari', emergency_phone='081333334444',
            medical_notes='Alergi kacang',
        ),
    ])
    db.session.commit()

    # ============================================
    # 3. KEUANGAN
    # ============================================
    print("Membuat data keuangan...")

    db.session.add_all([
        Income(date=today, category=IncomeCategory.SPP, description='SPP bulan ini', amount=350000,
               student='Andi Santoso', payment_method=PaymentMethod.TRANSFER, status=IncomeStatus.VERIFIED,
               receipt_number=f"INC-{today.year}-{today.month:02d}-001"),
        Income(date=today, category=IncomeCategory.REGISTRATION, description='Uang pangkal', amount=1500000,
               student='Citra Lestari', payment_method=PaymentMethod.CASH, status=IncomeStatus.PENDING,
               receipt_number=f"INC-{today.year}-{today.month:02d}-002"),
        Expense(date=today, category='ATK', description='Pembelian kertas dan krayon', amount=250000,
                status=ExpenseStatus.APPROVED),
        Expense(date=today, category='Utilitas', description='Listrik', amount=400000,
                status=ExpenseStatus.PENDING),
        PaymentSchedule(student_name='Andi Santoso', class_name='TK A', type='SPP Bulanan', amount=350000,
                        due_date=today + timedelta(days=10), status=ScheduleStatus.UPCOMING,
                        description='SPP bulan depan'),
        PaymentSchedule(student_name='Andi Santoso', class_name='TK A', type='Uang Kegiatan', amount=200000,
                        due_date=today - timedelta(days=5), status=ScheduleStatus.UPCOMING,
                        description='Kegiatan outing'),
        Notification(title='Selamat Datang', message='Sistem keuangan TK sudah dapat digunakan.'),
    ])
    db.session.commit()

    print("SEEDING SELESAI!")
    print("   Admin     : admin@tk.sch.id / admin123")
    print("   Bendahara : bendahara@tk.sch.id / bendahara123")
    print("   Orang Tua : budi@example.com / parent123")
