import os
import time
import uuid

from flask import Blueprint, current_app, jsonify, request, send_from_directory, url_for
from werkzeug.utils import secure_filename

from .catalog import catalog_write
from .images import compress_image
from .web import allowed_file

uploads_bp = Blueprint('uploads', __name__)


def upload_folder():
    return os.path.abspath(current_app.config['UPLOAD_FOLDER'])


def unique_filename(filename):
    """``<epoch millis>_<random>_<name>``; the random part keeps same-millisecond uploads apart"""
    return f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}_{filename}"


def _upload_error(message, status_code=400):
    return jsonify({'success': 0, 'message': message}), status_code


@uploads_bp.route('/upload', methods=['POST'])
@catalog_write
def upload():
    file = request.files.get('product')
    if not file or not file.filename:
        return _upload_error('No file uploaded')

    filename = secure_filename(file.filename)
    if not filename or not allowed_file(filename):
        return _upload_error('File type not allowed')

    folder = upload_folder()
    os.makedirs(folder, exist_ok=True)
    stored_name = unique_filename(filename)
    file_path = os.path.join(folder, stored_name)
    file.save(file_path)

    config = current_app.config
    if config['UPLOAD_COMPRESS']:
        success, original_size, compressed_size, _ = compress_image(
            file_path,
            max_width=config['IMAGE_MAX_WIDTH'],
            max_height=config['IMAGE_MAX_HEIGHT'],
            quality=config['IMAGE_QUALITY']
        )
        if not success:
            os.remove(file_path)
            return _upload_error('Uploaded file is not a valid image')
        current_app.logger.info('Uploaded %s (%d -> %d bytes)', stored_name, original_size, compressed_size)
    else:
        current_app.logger.info('Uploaded %s', stored_name)

    return jsonify({
        'success': 1,
        'image_url': url_for('uploads.serve_image', filename=stored_name, _external=True)
    })


@uploads_bp.route('/images/<path:filename>', methods=['GET'])
def serve_image(filename):
    return send_from_directory(upload_folder(), filename)
