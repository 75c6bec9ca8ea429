"""Services for image_exporter module."""
from .api_client import HTTPAPIClient
from .assets_api import AssetsAPIClient, AssetUploadResponse
from .file_reader import FileReaderService, ImageFile
from .repository import EntityRepository
from .uploader import RemoteUploaderService

__all__ = [
    "HTTPAPIClient",
    "AssetsAPIClient",
    "AssetUploadResponse",
    "FileReaderService",
    "ImageFile",
    "EntityRepository",
    "RemoteUploaderService",
]
