from datetime import date

from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileRequired, FileSize

from wtforms import (
    StringField,
    PasswordField,
    BooleanField,
    SelectField,
    DateField,
    TextAreaField,
    IntegerField,
    SubmitField,
)

from wtforms.validators import (
    DataRequired,
    InputRequired,
    Optional,
    Email,
    Length,
    EqualTo,
    NumberRange,
    Regexp,
    ValidationError,
)

from sikeu.models import (
    UserRole, StudentStatus, IncomeCategory, PaymentMethod, IncomeStatus,
    ExpenseStatus, ScheduleStatus, ContactCategory, ContactPriority,
)
from sikeu.utils.roles import role_choices


# ==========================================
# PILIHAN TETAP
# ==========================================
ACADEMIC_YEARS = ['2024/2025', '2025/2026', '2026/2027']

EXPENSE_CATEGORIES = [
    'Utilitas', 'ATK', 'Maintenance', 'Gaji', 'Operasional', 'Transport', 'Konsumsi', 'Lain-lain',
]

SCHEDULE_TYPES = ['SPP Bulanan', 'Uang Pangkal', 'Uang Kegiatan', 'Uang Seragam', 'Uang Buku', 'Lainnya']

PROOF_PAYMENT_TYPES = [
    'SPP Bulanan', 'Formulir', 'Uang Kegiatan, Alat, Bahan', 'Uang Seragam', 'Uang Sarana', 'Lainnya',
]

SCHOOL_BANK_ACCOUNTS = ['BNI - 0795834521 a.n Rita Ayu Bulan Trisna']

ALLOWED_PROOF_MIMETYPES = ('image/jpeg', 'image/png', 'image/jpg', 'application/pdf')
MAX_PROOF_SIZE = 10 * 1024 * 1024

AMOUNT_MESSAGE = 'Jumlah harus lebih dari 0'


def _plain_choices(values):
    return [(v, v) for v in values]


def enum_select(label, enum_cls, choices=None, **kwargs):
    # Data form berupa member enum, bukan string.
    return SelectField(label, choices=choices or enum_cls.choices(), coerce=enum_cls, **kwargs)


def amount_field(label='Jumlah (Rp)'):
    return IntegerField(label, validators=[
        InputRequired(message=AMOUNT_MESSAGE),
        NumberRange(min=1, message=AMOUNT_MESSAGE),
    ])


class AllowedMimeTypes:
    def __init__(self, mimetypes, message=None):
        self.mimetypes = mimetypes
        self.message = message or 'Format file harus JPG, PNG atau PDF'

    def __call__(self, form, field):
        upload = field.data
        if upload is None:
            return
        if (upload.mimetype or '').lower() not in self.mimetypes:
            raise ValidationError(self.message)


# ==========================================
# AUTH
# ==========================================
class LoginForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(), Email(message='Format email tidak valid')])
    password = PasswordField('Password', validators=[DataRequired()])
    remember = BooleanField('Ingat Saya')
    submit = SubmitField('Masuk')


class RegisterForm(FlaskForm):
    name = StringField('Nama Lengkap', validators=[DataRequired(), Length(max=100)])
    email = StringField('Email', validators=[DataRequired(), Email(message='Format email tidak valid')])
    password = PasswordField('Password', validators=[
        DataRequired(),
        Length(min=6, message="Password minimal 6 karakter")
    ])
    confirm_password = PasswordField('Konfirmasi Password', validators=[
        DataRequired(),
        EqualTo('password', message='Password tidak sama')
    ])
    submit = SubmitField('Daftar')


class ForgotPasswordForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(), Email(message='Format email tidak valid')])
    submit = SubmitField('Kirim Link Reset')


class ResetPasswordForm(FlaskForm):
    password = PasswordField('Password Baru', validators=[
        DataRequired(),
        Length(min=6, message="Password minimal 6 karakter")
    ])
    confirm_password = PasswordField('Konfirmasi Password Baru', validators=[
        DataRequired(),
        EqualTo('password', message='Password tidak sama')
    ])
    submit = SubmitField('Simpan Password Baru')


# ==========================================
# DATA MASTER
# ==========================================
class StudentForm(FlaskForm):
    nis = StringField('NIS', validators=[
        Optional(),
        Regexp(r'^\d+$', message='NIS hanya boleh berisi angka'),
        Length(max=20),
    ])
    name = StringField('Nama Lengkap Siswa', validators=[DataRequired()])
    class_name = SelectField('Kelas', validators=[DataRequired()])  # Pilihan dinamis diisi di admin.py
    status = enum_select('Status', StudentStatus, default=StudentStatus.ACTIVE)
    birth_date = DateField('Tanggal Lahir', format='%Y-%m-%d', validators=[DataRequired()])
    registration_date = DateField('Tanggal Daftar', format='%Y-%m-%d', default=date.today,
                                  validators=[DataRequired()])
    address = TextAreaField('Alamat Lengkap', validators=[DataRequired()])

    # Data Wali
    parent_name = StringField('Nama Orang Tua', validators=[DataRequired()])
    parent_email = StringField('Email Orang Tua', validators=[DataRequired(), Email(message='Format email tidak valid')])
    parent_phone = StringField('No. HP Orang Tua', validators=[DataRequired()])
    emergency_contact = StringField('Kontak Darurat', validators=[DataRequired()])
    emergency_phone = StringField('No. HP Darurat', validators=[DataRequired()])
    medical_notes = TextAreaField('Catatan Kesehatan', validators=[Optional()])

    submit = SubmitField('Simpan Data Siswa')


class ClassForm(FlaskForm):
    name = StringField('Nama Kelas', validators=[DataRequired()])
    teacher = StringField('Wali Kelas', validators=[DataRequired()])
    academic_year = SelectField('Tahun Ajaran', choices=_plain_choices(ACADEMIC_YEARS), validators=[DataRequired()])
    capacity = IntegerField('Kapasitas', validators=[
        InputRequired(),
        NumberRange(min=1, message='Kapasitas minimal 1')
    ])
    student_count = IntegerField('Jumlah Siswa', default=0, validators=[Optional(), NumberRange(min=0)])
    description = TextAreaField('Keterangan', validators=[Optional()])
    submit = SubmitField('Simpan Kelas')


class UserForm(FlaskForm):
    name = StringField('Nama', validators=[DataRequired(), Length(max=100)])
    email = StringField('Email', validators=[DataRequired(), Email(message='Format email tidak valid')])
    role = enum_select('Role', UserRole, choices=role_choices(), default=UserRole.PARENT)
    submit = SubmitField('Simpan User')


class NewUserForm(UserForm):
    password = PasswordField('Password', validators=[
        DataRequired(),
        Length(min=6, message="Password minimal 6 karakter")
    ])
    confirm_password = PasswordField('Konfirmasi Password', validators=[
        DataRequired(),
        EqualTo('password', message='Password tidak sama')
    ])


# ==========================================
# KEUANGAN
# ==========================================
class IncomeForm(FlaskForm):
    date = DateField('Tanggal', format='%Y-%m-%d', default=date.today, validators=[DataRequired()])
    category = enum_select('Kategori', IncomeCategory, default=IncomeCategory.SPP)
    description = StringField('Keterangan', validators=[DataRequired(message='Keterangan harus diisi')])
    amount = amount_field()
    student = StringField('Nama Siswa', validators=[DataRequired(message='Nama siswa harus diisi')])
    payment_method = enum_select('Metode Pembayaran', PaymentMethod, default=PaymentMethod.TRANSFER)
    status = enum_select('Status', IncomeStatus, default=IncomeStatus.PENDING)
    receipt_number = StringField('No. Kwitansi', validators=[DataRequired(message='Nomor kwitansi harus diisi')])
    notes = TextAreaField('Catatan', validators=[Optional()])
    submit = SubmitField('Simpan Pemasukan')


class ExpenseForm(FlaskForm):
    date = DateField('Tanggal', format='%Y-%m-%d', default=date.today, validators=[DataRequired()])
    category = SelectField('Kategori', choices=_plain_choices(EXPENSE_CATEGORIES), validators=[DataRequired()])
    description = StringField('Keterangan', validators=[DataRequired()])
    amount = amount_field()
    status = enum_select('Status', ExpenseStatus, default=ExpenseStatus.PENDING)
    notes = TextAreaField('Catatan', validators=[Optional()])
    submit = SubmitField('Simpan Pengeluaran')


class PaymentScheduleForm(FlaskForm):
    student_name = StringField('Nama Siswa', validators=[DataRequired()])
    class_name = SelectField('Kelas', validators=[DataRequired()])  # Pilihan dinamis diisi di admin.py
    type = SelectField('Jenis Pembayaran', choices=_plain_choices(SCHEDULE_TYPES), validators=[DataRequired()])
    amount = amount_field()
    due_date = DateField('Jatuh Tempo', format='%Y-%m-%d', validators=[DataRequired()])
    status = enum_select('Status', ScheduleStatus, default=ScheduleStatus.UPCOMING)
    description = TextAreaField('Keterangan', validators=[DataRequired()])
    submit = SubmitField('Simpan Jadwal')


# ==========================================
# KOMUNIKASI
# ==========================================
class NotificationForm(FlaskForm):
    title = StringField('Judul', validators=[DataRequired(), Length(max=150)])
    message = TextAreaField('Pesan', validators=[DataRequired()])
    submit = SubmitField('Kirim Notifikasi')


class PaymentProofForm(FlaskForm):
    payment_type = SelectField('Jenis Pembayaran', choices=_plain_choices(PROOF_PAYMENT_TYPES),
                               validators=[DataRequired()])
    amount = amount_field('Jumlah Transfer (Rp)')
    payment_date = DateField('Tanggal Transfer', format='%Y-%m-%d', default=date.today,
                             validators=[DataRequired()])
    bank_account = SelectField('Rekening Tujuan', choices=_plain_choices(SCHOOL_BANK_ACCOUNTS),
                               validators=[DataRequired()])
    reference_number = StringField('No. Referensi', validators=[DataRequired(message='Nomor referensi harus diisi')])
    notes = TextAreaField('Catatan', validators=[Optional()])
    proof_file = FileField('Bukti Transfer', validators=[
        FileRequired(message='File bukti transfer harus diupload'),
        AllowedMimeTypes(ALLOWED_PROOF_MIMETYPES),
        FileSize(max_size=MAX_PROOF_SIZE, message='Ukuran file maksimal 10MB'),
    ])
    submit = SubmitField('Kirim Bukti Pembayaran')


class ContactMessageForm(FlaskForm):
    subject = StringField('Subjek', validators=[DataRequired(), Length(max=150)])
    category = enum_select('Kategori', ContactCategory, default=ContactCategory.GENERAL)
    priority = enum_select('Prioritas', ContactPriority, default=ContactPriority.NORMAL)
    student_name = StringField('Nama Anak', validators=[Optional()])
    message = TextAreaField('Pesan', validators=[
        DataRequired(),
        Length(min=10, message='Pesan minimal 10 karakter')
    ])
    submit = SubmitField('Kirim Pesan')
