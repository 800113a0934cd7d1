"""
Taksonomi error aplikasi.

Setiap error membawa ``public_message`` yang aman ditampilkan ke pengguna;
detail teknis hanya masuk ke log.
"""


class AppError(Exception):
    public_message = 'Terjadi kesalahan. Silakan coba lagi.'

    def __init__(self, detail=None, public_message=None):
        super().__init__(detail or self.public_message)
        if public_message:
            self.public_message = public_message


class AuthError(AppError):
    public_message = 'Email atau password salah.'


class ValidationError(AppError):
    public_message = 'Periksa kembali isian formulir.'

    def __init__(self, errors, detail=None):
        super().__init__(detail or 'validation failed')
        self.errors = dict(errors)


class PermissionDenied(AppError):
    public_message = 'Akses ditolak.'


class FetchError(AppError):
    public_message = 'Gagal memuat data.'


class PersistenceError(AppError):
    public_message = 'Gagal menyimpan data.'


class UploadError(AppError):
    public_message = 'Upload file gagal.'
