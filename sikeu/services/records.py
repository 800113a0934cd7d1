# sikeu/services/records.py
"""
Domain Record Services.

Satu bentuk CRUD yang sama untuk setiap tabel: ``list_all``, ``get``,
``create``, ``update``, ``delete``. Error database dibungkus menjadi
``FetchError`` (baca) atau ``PersistenceError`` (tulis) dan dicatat di log;
view yang memanggil yang memutuskan pesan untuk pengguna.
"""
import logging
import random
from collections import namedtuple
from datetime import date

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from sikeu.errors import FetchError, PermissionDenied, PersistenceError
from sikeu.extensions import db
from sikeu.models import (
    User, UserRole, Student, ClassRecord, Income, Expense, PaymentSchedule,
    ScheduleStatus, PaymentProof, Notification, ContactMessage, utcnow,
)
from sikeu.utils.roles import MANAGE_USERS, can

logger = logging.getLogger(__name__)

PROTECTED_FIELDS = frozenset({'id', 'created_at', 'updated_at'})
NIS_RANDOM_ATTEMPTS = 20


class RecordService:
    model = None
    order_by = ()

    @property
    def table(self):
        return self.model.__tablename__

    def _query(self):
        return self.model.query

    def _check_fields(self, fields):
        protected = PROTECTED_FIELDS.intersection(fields)
        if protected:
            raise ValueError(f"{self.table}: field {sorted(protected)} diisi oleh database")
        unknown = [key for key in fields if key not in self.model.__mapper__.attrs]
        if unknown:
            raise ValueError(f"{self.table}: field tidak dikenal {unknown}")

    def _commit(self, action):
        try:
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("%s on %s failed", action, self.table)
            raise PersistenceError(str(exc)) from exc

    def list_all(self):
        try:
            return self._query().order_by(*self.order_by).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Listing %s failed", self.table)
            raise FetchError(str(exc)) from exc

    def get(self, record_id):
        try:
            return db.session.get(self.model, int(record_id))
        except (TypeError, ValueError):
            return None
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Reading %s #%s failed", self.table, record_id)
            raise FetchError(str(exc)) from exc

    def get_or_404(self, record_id):
        return db.get_or_404(self.model, record_id)

    def create(self, **fields):
        self._check_fields(fields)
        record = self.model(**fields)
        db.session.add(record)
        self._commit('Create')
        logger.info("Created %s #%s", self.table, record.id)
        return record.id

    def update(self, record_id, **fields):
        self._check_fields(fields)
        record = self.get(record_id)
        if record is None:
            raise PersistenceError(f"{self.table} #{record_id} not found")

        for key, value in fields.items():
            setattr(record, key, value)
        # createdAt tidak pernah disentuh
        record.updated_at = utcnow()
        self._commit('Update')
        logger.info("Updated %s #%s", self.table, record_id)

    def delete(self, record_id):
        record = self.get(record_id)
        if record is None:
            raise PersistenceError(f"{self.table} #{record_id} not found")

        db.session.delete(record)
        self._commit('Delete')
        logger.info("Deleted %s #%s", self.table, record_id)


# =========================================================
# USERS
# =========================================================

class UserService(RecordService):
    model = User
    order_by = (User.name.asc(), User.id.asc())

    def find_by_email(self, email):
        normalized = (email or '').strip().lower()
        if not normalized:
            return None
        try:
            return User.query.filter(func.lower(User.email) == normalized).first()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Looking up user by email failed")
            raise FetchError(str(exc)) from exc

    def create_account(self, name, email, password, role=UserRole.PARENT):
        user = User(name=name.strip(), email=email.strip().lower(), role=role)
        user.set_password(password)
        db.session.add(user)
        self._commit('Create account')
        logger.info("Created %s account #%s", role.value, user.id)
        return user.id

    def set_password(self, user_id, password):
        user = self.get(user_id)
        if user is None:
            raise PersistenceError(f"users #{user_id} not found")
        user.set_password(password)
        user.updated_at = utcnow()
        self._commit('Set password')

    def change_role(self, session, user_id, role):
        """Role hanya boleh diubah oleh admin, dan tidak untuk akunnya sendiri."""
        if not can(session.role, MANAGE_USERS):
            raise PermissionDenied(f"role {session.role} cannot change roles")
        if session.principal_id == int(user_id):
            raise PermissionDenied('users cannot change their own role',
                                   public_message='Anda tidak dapat mengubah role akun Anda sendiri.')
        self.update(user_id, role=role)

    def delete(self, record_id):
        raise PermissionDenied('user accounts are never deleted')


# =========================================================
# SISWA & KELAS
# =========================================================

class StudentService(RecordService):
    model = Student
    order_by = (Student.name.asc(), Student.id.asc())

    def nis_taken(self, nis, exclude_id=None):
        try:
            query = Student.query.filter(Student.nis == nis)
            if exclude_id is not None:
                query = query.filter(Student.id != exclude_id)
            return query.first() is not None
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Checking NIS %s failed", nis)
            raise FetchError(str(exc)) from exc

    def _nis_with_prefix(self, prefix):
        try:
            rows = db.session.query(Student.nis).filter(Student.nis.like(f'{prefix}%')).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Listing NIS %s* failed", prefix)
            raise FetchError(str(exc)) from exc
        return {row[0] for row in rows}

    def generate_nis(self, today=None):
        """NIS usulan: 2 digit tahun + 2 digit bulan + 3 digit acak.

        Mengembalikan ``None`` kalau semua 1000 nomor bulan itu sudah terpakai.
        """
        today = today or date.today()
        prefix = today.strftime('%y%m')
        for _ in range(NIS_RANDOM_ATTEMPTS):
            nis = f"{prefix}{random.randint(0, 999):03d}"
            if not self.nis_taken(nis):
                return nis

        # Bulan ini hampir penuh: pilih dari nomor yang masih kosong
        taken = self._nis_with_prefix(prefix)
        free = [f"{prefix}{n:03d}" for n in range(1000) if f"{prefix}{n:03d}" not in taken]
        return random.choice(free) if free else None

    def children_of(self, email):
        normalized = (email or '').strip().lower()
        return [s for s in self.list_all() if (s.parent_email or '').strip().lower() == normalized]


class ClassService(RecordService):
    model = ClassRecord
    order_by = (ClassRecord.name.asc(), ClassRecord.id.asc())

    def names(self):
        return [c.name for c in self.list_all()]


# =========================================================
# KEUANGAN
# =========================================================

class IncomeService(RecordService):
    model = Income
    order_by = (Income.date.desc(), Income.id.desc())

    def next_receipt_number(self, today=None):
        today = today or date.today()
        prefix = f"INC-{today.year}-{today.month:02d}-"
        count = Income.query.filter(Income.receipt_number.like(f"{prefix}%")).count()
        return f"{prefix}{count + 1:03d}"


class ExpenseService(RecordService):
    model = Expense
    order_by = (Expense.date.desc(), Expense.id.desc())


ScheduleView = namedtuple('ScheduleView', ['record', 'status'])


def derive_status(stored_status, due_date, today=None):
    """
    Status tampilan jadwal pembayaran.

    ``paid`` yang tersimpan selalu menang; selain itu status dihitung dari
    tanggal jatuh tempo. Hasilnya tidak pernah ditulis balik ke database.
    """
    today = today or date.today()
    if stored_status == ScheduleStatus.PAID:
        return ScheduleStatus.PAID
    if due_date < today:
        return ScheduleStatus.OVERDUE
    return ScheduleStatus.UPCOMING


class PaymentScheduleService(RecordService):
    model = PaymentSchedule
    order_by = (PaymentSchedule.due_date.asc(), PaymentSchedule.id.asc())

    def list_with_status(self, today=None):
        return [
            ScheduleView(record, derive_status(record.status, record.due_date, today))
            for record in self.list_all()
        ]

    def list_for_students(self, student_names, today=None):
        names = {name.strip().lower() for name in student_names if name}
        return [
            item for item in self.list_with_status(today)
            if item.record.student_name.strip().lower() in names
        ]


class PaymentProofService(RecordService):
    model = PaymentProof
    order_by = (PaymentProof.uploaded_at.desc(), PaymentProof.id.desc())

    def list_for_principal(self, principal_id):
        try:
            return PaymentProof.query.filter_by(student_id=principal_id).order_by(*self.order_by).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Listing payment proofs for user %s failed", principal_id)
            raise FetchError(str(exc)) from exc

    def update(self, record_id, **fields):
        raise PermissionDenied('payment proofs are immutable')


# =========================================================
# KOMUNIKASI
# =========================================================

class NotificationService(RecordService):
    model = Notification
    order_by = (Notification.created_at.desc(), Notification.id.desc())


class ContactMessageService(RecordService):
    model = ContactMessage
    order_by = (ContactMessage.created_at.desc(), ContactMessage.id.desc())

    def list_for_sender(self, sender_id):
        try:
            return ContactMessage.query.filter_by(sender_id=sender_id).order_by(*self.order_by).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Listing contact messages for user %s failed", sender_id)
            raise FetchError(str(exc)) from exc
