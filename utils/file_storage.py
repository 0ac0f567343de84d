import os
import time
import uuid
import logging

from werkzeug.utils import secure_filename

from parsers.file_parser import ALLOWED_EXTENSIONS, ALLOWED_MIME_TYPES
from .exceptions import UnsupportedFileTypeError, ValidationError


def file_extension(filename):
    return filename.rsplit('.', 1)[1].lower() if '.' in filename else ''


def allowed_file(filename):
    """Check if file extension is allowed"""
    return file_extension(filename) in ALLOWED_EXTENSIONS


def validate_upload(file):
    """Reject missing files and anything that is not an Excel workbook"""
    if not file or not file.filename:
        raise ValidationError('Please upload a file')
    if file.mimetype not in ALLOWED_MIME_TYPES:
        raise UnsupportedFileTypeError('Invalid file type. Only Excel files (.xls, .xlsx) are allowed.')
    if not allowed_file(file.filename):
        raise UnsupportedFileTypeError('Invalid file extension. Only .xls and .xlsx are allowed.')


def stored_file_name(filename):
    """Unique on-disk name keeping the original stem and extension"""
    stem = secure_filename(filename.rsplit('.', 1)[0]) or 'upload'
    unique_suffix = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"
    return f"{stem}-{unique_suffix}.{file_extension(filename)}"


def save_upload(file, upload_folder):
    """Save an uploaded file and return its path"""
    file_path = os.path.join(upload_folder, stored_file_name(file.filename))
    file.save(file_path)
    return file_path


def cleanup_file(file_path):
    """Remove a stored file, logging (not raising) on failure"""
    try:
        if file_path and os.path.exists(file_path):
            os.remove(file_path)
            logging.info(f"Cleaned up file: {file_path}")
            return True
    except OSError as e:
        logging.warning(f"Could not delete file {file_path}: {str(e)}")
    return False
