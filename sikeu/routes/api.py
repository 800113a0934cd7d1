from flask import Blueprint, current_app, jsonify, request

from sikeu.errors import UploadError
from sikeu.extensions import csrf, drive_relay

api_bp = Blueprint('api', __name__)

# Semua method diterima di sini supaya selain POST dijawab 405 dalam format JSON.
ALL_METHODS = ['GET', 'HEAD', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS']


@api_bp.app_errorhandler(405)
def method_not_allowed(error):
    # 405 dari routing tidak sampai ke handler blueprint, jadi dipasang di level app.
    if request.path == '/api' or request.path.startswith('/api/'):
        return jsonify(message='Method Not Allowed'), 405
    return error


@api_bp.route('/upload', methods=ALL_METHODS)
@csrf.exempt
def upload():
    """
    Relay satu file multipart (field ``file``) ke folder Google Drive.
    Endpoint ini tidak melakukan autentikasi sendiri.
    """
    if request.method != 'POST':
        return jsonify(message='Method Not Allowed'), 405

    upload_file = request.files.get('file')
    if upload_file is None or not upload_file.filename:
        return jsonify(message='No file uploaded'), 400

    mimetype = upload_file.mimetype or 'application/octet-stream'
    try:
        uploaded = drive_relay.upload(upload_file.stream, upload_file.filename, mimetype)
    except UploadError as exc:
        current_app.logger.error("Relay upload of %s failed: %s", upload_file.filename, exc)
        return jsonify(message='Upload failed'), 500

    return jsonify(
        message='File uploaded successfully',
        fileId=uploaded.file_id,
        fileName=uploaded.file_name,
    ), 200
