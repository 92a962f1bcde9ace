"""
Object storage for photos, thumbnails, generated PDFs and signatures.

Objects are written under STORAGE_FOLDER and addressed by slash-separated
keys; the public URL of an object is STORAGE_PUBLIC_URL/<key>.
"""

import os
import logging
from werkzeug.utils import secure_filename

from config import STORAGE_FOLDER, STORAGE_PUBLIC_URL

logger = logging.getLogger(__name__)


def clean_key(key: str) -> str:
    """Sanitise every path segment of a storage key."""
    segments = [secure_filename(segment) for segment in key.replace('\\', '/').split('/')]
    segments = [segment for segment in segments if segment]
    if not segments:
        raise ValueError(f"Invalid storage key: {key!r}")
    return '/'.join(segments)


def _path_for(key: str) -> str:
    return os.path.join(STORAGE_FOLDER, *clean_key(key).split('/'))


def url_for_key(key: str) -> str:
    return f"{STORAGE_PUBLIC_URL}/{clean_key(key)}"


def key_from_url(url: str):
    """Storage key for a public URL, or None if the URL is not ours."""
    prefix = f"{STORAGE_PUBLIC_URL}/"
    if not url or not url.startswith(prefix):
        return None
    return url[len(prefix):]


def upload(data: bytes, key: str, content_type: str = None) -> str:
    """
    Store bytes under a key.

    Args:
        data: Object contents
        key: Storage key, e.g. "reports/<id>/photos/<file>"
        content_type: MIME type (informational for the filesystem backend)

    Returns:
        Public URL of the stored object
    """
    path = _path_for(key)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'wb') as f:
        f.write(data)
    logger.info(f"Stored {len(data)} bytes at {clean_key(key)} ({content_type or 'unknown type'})")
    return url_for_key(key)


def read(key: str) -> bytes:
    path = _path_for(key)
    if not os.path.exists(path):
        raise FileNotFoundError(f"Object not found: {key}")
    with open(path, 'rb') as f:
        return f.read()


def exists(key: str) -> bool:
    return os.path.exists(_path_for(key))


def delete(key: str) -> bool:
    """Remove an object. Returns False if it did not exist."""
    path = _path_for(key)
    if os.path.exists(path):
        os.remove(path)
        return True
    return False


def local_path(key: str) -> str:
    """Filesystem path of an object, for send_file."""
    return _path_for(key)


def decode_data_url(data_url: str):
    """
    Decode a base64 data URL such as a drawn signature.

    Returns:
        Tuple of (bytes, content_type)
    """
    import base64
    import binascii

    header, _, payload = data_url.partition(',')
    if not payload or not header.startswith('data:') or ';base64' not in header:
        raise ValueError("Signature must be a base64 data URL")
    content_type = header[len('data:'):].split(';')[0] or 'application/octet-stream'
    try:
        return base64.b64decode(payload, validate=True), content_type
    except binascii.Error:
        raise ValueError("Signature data is not valid base64")
