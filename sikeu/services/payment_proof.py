"""
Alur kirim bukti pembayaran wali murid.

    EDITING -> VALIDATING -> UPLOADING -> PERSISTING_METADATA -> DONE

Setiap kegagalan kembali ke EDITING dengan isian form tetap utuh. File
diunggah dulu ke Google Drive, baru metadata ditulis ke ``payment_proofs``.
Kalau penulisan metadata gagal, file di Drive dibiarkan (lihat
``sikeu/scripts/orphan_proofs.py``) dan upload tidak diulang.
"""
import enum
import logging
from collections import namedtuple

from sikeu.errors import PermissionDenied, PersistenceError, UploadError
from sikeu.models import utcnow
from sikeu.services.records import PaymentProofService
from sikeu.utils.roles import SUBMIT_PAYMENT_PROOF, can

logger = logging.getLogger(__name__)

GENERIC_FAILURE = 'Terjadi kesalahan saat mengupload. Silakan coba lagi.'
SUCCESS_MESSAGE = 'Bukti pembayaran berhasil dikirim! Admin akan memverifikasi pembayaran Anda.'


class SubmissionState(enum.Enum):
    EDITING = 'editing'
    VALIDATING = 'validating'
    UPLOADING = 'uploading'
    PERSISTING_METADATA = 'persisting_metadata'
    DONE = 'done'


SubmissionResult = namedtuple('SubmissionResult', ['state', 'proof_id', 'errors', 'failure'])


def _back_to_editing(errors=None, failure=None):
    return SubmissionResult(SubmissionState.EDITING, None, errors or {}, failure)


class PaymentProofSubmission:

    def __init__(self, uploader, proofs=None):
        self.uploader = uploader
        self.proofs = proofs or PaymentProofService()
        self.state = SubmissionState.EDITING

    def submit(self, session, form):
        if not session.is_authenticated or not can(session.role, SUBMIT_PAYMENT_PROOF):
            raise PermissionDenied(f"role {session.role} cannot submit payment proofs")

        self.state = SubmissionState.VALIDATING
        if not form.validate():
            self.state = SubmissionState.EDITING
            return _back_to_editing(errors=form.errors)

        self.state = SubmissionState.UPLOADING
        upload = form.proof_file.data
        try:
            uploaded = self.uploader.upload(upload.stream, upload.filename, upload.mimetype)
        except UploadError as exc:
            logger.warning("Payment proof upload failed for user %s: %s", session.principal_id, exc)
            self.state = SubmissionState.EDITING
            return _back_to_editing(failure=exc)

        self.state = SubmissionState.PERSISTING_METADATA
        try:
            proof_id = self.proofs.create(
                student_id=session.principal_id,
                payment_type=form.payment_type.data,
                amount=form.amount.data,
                payment_date=form.payment_date.data,
                bank_account=form.bank_account.data,
                reference_number=form.reference_number.data.strip(),
                notes=(form.notes.data or '').strip(),
                file_id=uploaded.file_id,
                uploaded_at=utcnow(),
            )
        except PersistenceError as exc:
            # File sudah ada di Drive tapi tidak direferensikan.
            logger.error("Payment proof metadata not saved, orphaned Drive file %s", uploaded.file_id)
            self.state = SubmissionState.EDITING
            return _back_to_editing(failure=exc)

        logger.info("Payment proof #%s stored with Drive file %s", proof_id, uploaded.file_id)
        self.state = SubmissionState.DONE
        return SubmissionResult(SubmissionState.DONE, proof_id, {}, None)
