from sikeu.extensions import db
from datetime import datetime, timezone
import enum
from flask_login import UserMixin
from sqlalchemy.types import TypeDecorator
from werkzeug.security import generate_password_hash, check_password_hash


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ==========================================
# 0. TIPE KOLOM & BASE MODEL
# ==========================================
class CalendarDate(TypeDecorator):
    """
    Tanggal kalender yang disimpan sebagai timestamp pukul 00:00.

    Semua field tanggal (tanggal lahir, jatuh tempo, tanggal transaksi) memakai
    tipe ini sehingga konversi timestamp <-> ``date`` sama untuk semua entitas.
    Nilai ``datetime`` yang masuk dipotong ke tanggalnya.
    """
    impl = db.DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, datetime):
            value = value.date()
        return datetime(value.year, value.month, value.day)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.date()
        return value


class BaseModel(db.Model):
    """
    Kelas abstract yang diwarisi semua model.
    Timestamp createdAt/updatedAt diisi oleh database layer, bukan oleh form.
    """
    __abstract__ = True

    created_at = db.Column('createdAt', db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column('updatedAt', db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)


# ==========================================
# 1. ENUMS
# ==========================================
class LabeledEnum(enum.Enum):
    """Enum yang nilainya disimpan apa adanya di database, dengan label tampilan."""

    @property
    def label(self):
        return type(self).__labels__.get(self.value, self.value)

    @classmethod
    def choices(cls):
        return [(member.value, member.label) for member in cls]


def enum_column(enum_cls, **kwargs):
    return db.Column(
        db.Enum(
            enum_cls,
            values_callable=lambda members: [m.value for m in members],
            native_enum=False,
            validate_strings=True,
            length=20,
        ),
        **kwargs
    )


class UserRole(enum.Enum):
    # Label dan hak akses tiap role ada di sikeu.utils.roles.ROLE_POLICIES
    ADMIN = 'admin'
    BENDAHARA = 'bendahara'
    GURU = 'guru'
    PARENT = 'parent'


class StudentStatus(LabeledEnum):
    __labels__ = {'active': 'Aktif', 'alumni': 'Alumni'}
    ACTIVE = 'active'
    ALUMNI = 'alumni'


class IncomeCategory(LabeledEnum):
    __labels__ = {
        'spp': 'SPP Bulanan',
        'registration': 'Uang Pangkal',
        'donation': 'Donasi',
        'other': 'Lainnya',
    }
    SPP = 'spp'
    REGISTRATION = 'registration'
    DONATION = 'donation'
    OTHER = 'other'


class PaymentMethod(LabeledEnum):
    __labels__ = {'transfer': 'Transfer Bank', 'cash': 'Tunai'}
    TRANSFER = 'transfer'
    CASH = 'cash'


class IncomeStatus(LabeledEnum):
    __labels__ = {
        'pending': 'Menunggu Verifikasi',
        'verified': 'Terverifikasi',
        'rejected': 'Ditolak',
    }
    PENDING = 'pending'
    VERIFIED = 'verified'
    REJECTED = 'rejected'


class ExpenseStatus(LabeledEnum):
    __labels__ = {
        'pending': 'Menunggu Persetujuan',
        'approved': 'Disetujui',
        'rejected': 'Ditolak',
    }
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class ScheduleStatus(LabeledEnum):
    __labels__ = {'upcoming': 'Akan Datang', 'overdue': 'Terlambat', 'paid': 'Lunas'}
    UPCOMING = 'upcoming'
    OVERDUE = 'overdue'
    PAID = 'paid'


class ContactCategory(LabeledEnum):
    __labels__ = {
        'general': 'Pertanyaan Umum',
        'payment': 'Pembayaran',
        'academic': 'Akademik',
        'schedule': 'Jadwal',
        'complaint': 'Keluhan',
        'suggestion': 'Saran',
        'other': 'Lainnya',
    }
    GENERAL = 'general'
    PAYMENT = 'payment'
    ACADEMIC = 'academic'
    SCHEDULE = 'schedule'
    COMPLAINT = 'complaint'
    SUGGESTION = 'suggestion'
    OTHER = 'other'


class ContactPriority(LabeledEnum):
    __labels__ = {'low': 'Rendah', 'normal': 'Normal', 'high': 'Tinggi', 'urgent': 'Mendesak'}
    LOW = 'low'
    NORMAL = 'normal'
    HIGH = 'high'
    URGENT = 'urgent'


class ContactStatus(LabeledEnum):
    __labels__ = {'sent': 'Terkirim', 'read': 'Dibaca', 'replied': 'Dibalas'}
    SENT = 'sent'
    READ = 'read'
    REPLIED = 'replied'


# ==========================================
# 2. USERS
# ==========================================
class User(UserMixin, BaseModel):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    password_hash = db.Column('passwordHash', db.String(256))
    role = enum_column(UserRole, default=UserRole.PARENT, nullable=False)

    payment_proofs = db.relationship('PaymentProof', backref='submitter', lazy=True)
    contact_messages = db.relationship('ContactMessage', backref='sender', lazy=True)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)


# ==========================================
# 3. SISWA & KELAS
# ==========================================
class Student(BaseModel):
    __tablename__ = 'students'
    id = db.Column(db.Integer, primary_key=True)
    nis = db.Column(db.String(20), unique=True, nullable=True)
    name = db.Column(db.String(100), nullable=False)
    # Dicocokkan ke ClassRecord.name hanya lewat kesamaan string.
    class_name = db.Column('class', db.String(50), nullable=False, index=True)
    parent_name = db.Column('parentName', db.String(100), nullable=False)
    parent_email = db.Column('parentEmail', db.String(120), nullable=False, index=True)
    parent_phone = db.Column('parentPhone', db.String(20), nullable=False)
    status = enum_column(StudentStatus, default=StudentStatus.ACTIVE, nullable=False)
    registration_date = db.Column('registrationDate', CalendarDate, nullable=False)
    birth_date = db.Column('birthDate', CalendarDate, nullable=False)
    address = db.Column(db.Text, nullable=False)
    emergency_contact = db.Column('emergencyContact', db.String(100), nullable=False)
    emergency_phone = db.Column('emergencyPhone', db.String(20), nullable=False)
    medical_notes = db.Column('medicalNotes', db.Text)


class ClassRecord(BaseModel):
    __tablename__ = 'classes'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False)
    teacher = db.Column(db.String(100), nullable=False)
    student_count = db.Column('studentCount', db.Integer, default=0, nullable=False)
    academic_year = db.Column('academicYear', db.String(20), nullable=False)
    capacity = db.Column(db.Integer, nullable=False)
    description = db.Column(db.Text)


# ==========================================
# 4. KEUANGAN
# ==========================================
class Income(BaseModel):
    __tablename__ = 'incomes'
    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(CalendarDate, nullable=False)
    category = enum_column(IncomeCategory, default=IncomeCategory.SPP, nullable=False)
    description = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Integer, nullable=False)  # Rupiah, tanpa desimal
    student = db.Column(db.String(100), nullable=False)
    payment_method = enum_column(PaymentMethod, name='paymentMethod', default=PaymentMethod.TRANSFER, nullable=False)
    status = enum_column(IncomeStatus, default=IncomeStatus.PENDING, nullable=False)
    receipt_number = db.Column('receiptNumber', db.String(30), nullable=False)
    notes = db.Column(db.Text)


class Expense(BaseModel):
    __tablename__ = 'expenses'
    id = db.Column(db.Integer, primary_key=True)
    description = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(50), nullable=False)
    date = db.Column(CalendarDate, nullable=False)
    status = enum_column(ExpenseStatus, default=ExpenseStatus.PENDING, nullable=False)
    notes = db.Column(db.Text)


class PaymentSchedule(BaseModel):
    __tablename__ = 'payments'
    id = db.Column(db.Integer, primary_key=True)
    student_name = db.Column('studentName', db.String(100), nullable=False)
    class_name = db.Column('class', db.String(50), nullable=False)
    type = db.Column(db.String(50), nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    due_date = db.Column('dueDate', CalendarDate, nullable=False)
    # Hanya 'paid' yang dipercaya apa adanya; 'overdue' dihitung saat dibaca.
    status = enum_column(ScheduleStatus, default=ScheduleStatus.UPCOMING, nullable=False)
    description = db.Column(db.Text, nullable=False)


class PaymentProof(BaseModel):
    """Bukti transfer dari wali murid. Tidak ada jalur update."""
    __tablename__ = 'payment_proofs'
    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column('student', db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    payment_type = db.Column('paymentType', db.String(50), nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    payment_date = db.Column('paymentDate', CalendarDate, nullable=False)
    bank_account = db.Column('bankAccount', db.String(100), nullable=False)
    reference_number = db.Column('referenceNumber', db.String(50), nullable=False)
    notes = db.Column(db.Text, default='')
    # Referensi ke file di Google Drive, hanya bisa di-resolve oleh Drive.
    file_id = db.Column('fileId', db.String(128), nullable=False)
    uploaded_at = db.Column('uploadedAt', db.DateTime, default=utcnow, nullable=False)


# ==========================================
# 5. KOMUNIKASI
# ==========================================
class Notification(BaseModel):
    """Pengumuman admin, dibaca oleh semua wali murid."""
    __tablename__ = 'notifications'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(150), nullable=False)
    message = db.Column(db.Text, nullable=False)


class ContactMessage(BaseModel):
    __tablename__ = 'contact_messages'
    id = db.Column(db.Integer, primary_key=True)
    sender_id = db.Column('sender', db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    subject = db.Column(db.String(150), nullable=False)
    category = enum_column(ContactCategory, default=ContactCategory.GENERAL, nullable=False)
    priority = enum_column(ContactPriority, default=ContactPriority.NORMAL, nullable=False)
    message = db.Column(db.Text, nullable=False)
    student_name = db.Column('studentName', db.String(100))
    status = enum_column(ContactStatus, default=ContactStatus.SENT, nullable=False)
    reply = db.Column(db.Text)
    replied_at = db.Column('repliedAt', db.DateTime)
