"""
Profile pictures in Azure Blob Storage.
"""
import logging
import secrets
from datetime import datetime, timezone

from azure.core.exceptions import AzureError, ResourceExistsError
from azure.storage.blob import BlobServiceClient, ContentSettings
from flask import current_app
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """The object store rejected or failed an upload."""


def object_key(filename, now=None):
    """Timestamp plus a random suffix so concurrent uploads never share a key."""
    now = now or datetime.now(timezone.utc)
    name = secure_filename(filename or '') or 'upload'
    return '%s-%s-%s' % (now.strftime('%Y%m%dT%H%M%S%f'), secrets.token_hex(4), name)


def _container():
    connection_string = current_app.config['AZURE_STORAGE_CONNECTION_STRING']
    if not connection_string:
        raise StorageError('Object storage is not configured')
    service = BlobServiceClient.from_connection_string(connection_string)
    container = service.get_container_client(current_app.config['PROFILE_PICTURE_CONTAINER'])
    try:
        container.create_container(public_access='blob')
    except ResourceExistsError:
        pass
    return container


def upload_profile_picture(file_storage):
    """Store an uploaded werkzeug FileStorage and return its public URL."""
    key = object_key(file_storage.filename)
    try:
        blob = _container().get_blob_client(key)
        blob.upload_blob(
            file_storage.stream,
            overwrite=False,
            content_settings=ContentSettings(content_type=file_storage.mimetype),
        )
    except AzureError as exc:
        logger.exception('Upload of %s failed', key)
        raise StorageError('Upload failed') from exc
    logger.info('Uploaded profile picture %s', key)
    return blob.url
