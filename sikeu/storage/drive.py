"""
Relay file ke Google Drive.

Kredensial OAuth2 (client id/secret + refresh token) dibaca dari konfigurasi
aplikasi pada setiap pemanggilan; data request tidak pernah ikut membentuk
kredensial. Tidak ada state yang dibagi antar request selain konfigurasi.
"""
import logging
from collections import namedtuple

from flask import current_app
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.http import MediaIoBaseUpload

from sikeu.errors import UploadError

logger = logging.getLogger(__name__)

TOKEN_URI = 'https://oauth2.googleapis.com/token'
DRIVE_SCOPES = ['https://www.googleapis.com/auth/drive.file']
UPLOAD_CHUNK_SIZE = 1024 * 1024

UploadedFile = namedtuple('UploadedFile', ['file_id', 'file_name'])


class DriveSettings(namedtuple('DriveSettings', [
    'client_id', 'client_secret', 'redirect_uri', 'refresh_token', 'folder_id'
])):
    __slots__ = ()

    @classmethod
    def from_config(cls, config):
        return cls(
            client_id=config.get('GDRIVE_CLIENT_ID'),
            client_secret=config.get('GDRIVE_CLIENT_SECRET'),
            redirect_uri=config.get('GDRIVE_REDIRECT_URI'),
            refresh_token=config.get('GDRIVE_REFRESH_TOKEN'),
            folder_id=config.get('GDRIVE_FOLDER_ID'),
        )

    @property
    def is_configured(self):
        return bool(self.client_id and self.client_secret and self.refresh_token)


class DriveRelay:
    def __init__(self, app=None):
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        app.extensions['drive_relay'] = self

    def settings(self):
        return DriveSettings.from_config(current_app.config)

    def _build_service(self, settings):
        credentials = Credentials(
            None,
            refresh_token=settings.refresh_token,
            token_uri=TOKEN_URI,
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            scopes=DRIVE_SCOPES,
        )
        return build('drive', 'v3', credentials=credentials, cache_discovery=False)

    def _service(self):
        settings = self.settings()
        if not settings.is_configured:
            raise UploadError('Google Drive credentials are not configured')
        try:
            return settings, self._build_service(settings)
        except Exception as exc:
            logger.exception("Building Drive client failed")
            raise UploadError(str(exc)) from exc

    def upload(self, stream, filename, mimetype):
        """Kirim ``stream`` ke Drive, kembalikan ``UploadedFile``.

        Sukses/gagal diteruskan apa adanya dari Drive; tidak ada retry.
        Semua kegagalan transport/auth dijadikan ``UploadError``.
        """
        settings, service = self._service()

        metadata = {'name': filename, 'mimeType': mimetype}
        if settings.folder_id:
            metadata['parents'] = [settings.folder_id]

        try:
            media = MediaIoBaseUpload(stream, mimetype=mimetype, chunksize=UPLOAD_CHUNK_SIZE, resumable=True)
            created = service.files().create(
                body=metadata,
                media_body=media,
                fields='id, name',
            ).execute()
        except Exception as exc:
            logger.exception("Drive upload failed for %s", filename)
            raise UploadError(str(exc)) from exc

        file_id = (created or {}).get('id')
        if not file_id:
            raise UploadError('Drive response did not contain a file id')

        logger.info("Uploaded %s to Drive as %s", filename, file_id)
        return UploadedFile(file_id=file_id, file_name=created.get('name') or filename)

    def list_folder_files(self):
        settings, service = self._service()
        if not settings.folder_id:
            raise UploadError('GDRIVE_FOLDER_ID is not configured')

        query = f"'{settings.folder_id}' in parents and trashed = false"
        files = []
        page_token = None
        try:
            while True:
                response = service.files().list(
                    q=query,
                    fields='nextPageToken, files(id, name, createdTime)',
                    pageToken=page_token,
                ).execute()
                files.extend(response.get('files', []))
                page_token = response.get('nextPageToken')
                if not page_token:
                    break
        except Exception as exc:
            logger.exception("Listing Drive folder %s failed", settings.folder_id)
            raise UploadError(str(exc)) from exc
        return files

    def delete_file(self, file_id):
        _, service = self._service()
        try:
            service.files().delete(fileId=file_id).execute()
        except Exception as exc:
            logger.exception("Deleting Drive file %s failed", file_id)
            raise UploadError(str(exc)) from exc
