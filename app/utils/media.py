"""
Media Pipeline (Cloudinary)

FLOW OVERVIEW
- configure(app)
  • Push CLOUDINARY_* credentials into the SDK; a no-op when they are absent.
- upload_image(content, folder, filename) → MediaAsset
  • Upload limited to 2000x2000 at auto quality, then derive:
    thumbnail  → 400x400 fill, auto quality, jpg
    watermark  → 1200x1200 limit with a "© Studio37" text overlay bottom-right, jpg
- destroy(public_id) → bool
- fetch_remote_image(url) → (bytes, content_type)
  • Used by the remote-import route; only image/* responses are accepted.
"""

import io
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import cloudinary
import cloudinary.uploader
import cloudinary.utils
import requests
from flask import current_app

from .logger import mask_secret
from .prom_metrics import observe_media_upload


WATERMARK_TEXT = 'text:Arial_40_bold:© Studio37'
REMOTE_FETCH_TIMEOUT = 10


class MediaError(Exception):
    """Base error for media pipeline failures"""


class MediaNotConfiguredError(MediaError):
    pass


class MediaUploadError(MediaError):
    pass


class MediaFetchError(MediaError):
    pass


@dataclass
class MediaAsset:
    public_id: str
    secure_url: str
    thumbnail_url: str
    watermarked_url: str
    bytes: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None
    original_filename: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


def thumbnail_url(public_id: str) -> str:
    url, _ = cloudinary.utils.cloudinary_url(
        public_id, width=400, height=400, crop='fill', quality='auto', format='jpg', secure=True
    )
    return url


def watermarked_url(public_id: str) -> str:
    url, _ = cloudinary.utils.cloudinary_url(
        public_id,
        transformation=[
            {'width': 1200, 'height': 1200, 'crop': 'limit', 'quality': 'auto'},
            {'overlay': WATERMARK_TEXT, 'gravity': 'south_east', 'x': 20, 'y': 20, 'opacity': 50},
        ],
        format='jpg',
        secure=True,
    )
    return url


class MediaPipeline:
    """Thin wrapper over the Cloudinary SDK."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def configure(self, app) -> None:
        if not app.config.get('CLOUDINARY_CLOUD_NAME'):
            self.logger.info("Cloudinary not configured; media uploads disabled")
            return
        cloudinary.config(
            cloud_name=app.config.get('CLOUDINARY_CLOUD_NAME'),
            api_key=app.config.get('CLOUDINARY_API_KEY'),
            api_secret=app.config.get('CLOUDINARY_API_SECRET'),
            secure=True,
        )
        self.logger.info(f"Cloudinary configured for {app.config.get('CLOUDINARY_CLOUD_NAME')} "
                         f"(key {mask_secret(app.config.get('CLOUDINARY_API_KEY'))})")

    def is_configured(self) -> bool:
        config = current_app.config
        return all(config.get(key) for key in
                   ('CLOUDINARY_CLOUD_NAME', 'CLOUDINARY_API_KEY', 'CLOUDINARY_API_SECRET'))

    def upload_image(self, content: bytes, folder: str, filename: Optional[str] = None) -> MediaAsset:
        """
        Upload one image and compute its derived URLs.

        Raises:
            MediaNotConfiguredError: credentials missing
            MediaUploadError: provider rejected the upload
        """
        if not self.is_configured():
            raise MediaNotConfiguredError('Cloudinary credentials are not configured')

        try:
            result = cloudinary.uploader.upload(
                io.BytesIO(content),
                folder=folder,
                resource_type='image',
                transformation=[{'width': 2000, 'height': 2000, 'crop': 'limit', 'quality': 'auto'}],
            )
        except Exception as e:
            observe_media_upload('error')
            self.logger.error(f"Cloudinary upload failed for {filename or 'unnamed'} in {folder}: {e}")
            raise MediaUploadError(str(e)) from e

        observe_media_upload('success')
        public_id = result['public_id']
        return MediaAsset(
            public_id=public_id,
            secure_url=result.get('secure_url'),
            thumbnail_url=thumbnail_url(public_id),
            watermarked_url=watermarked_url(public_id),
            bytes=result.get('bytes'),
            width=result.get('width'),
            height=result.get('height'),
            format=result.get('format'),
            original_filename=filename or result.get('original_filename') or public_id,
            raw=result,
        )

    def destroy(self, public_id: Optional[str]) -> bool:
        """Delete a hosted asset; failures are logged, never raised."""
        if not public_id or not self.is_configured():
            return False
        try:
            result = cloudinary.uploader.destroy(public_id)
        except Exception as e:
            self.logger.warning(f"Cloudinary destroy failed for {public_id}: {e}")
            return False
        return (result or {}).get('result') == 'ok'

    def fetch_remote_image(self, url: str) -> Tuple[bytes, str]:
        try:
            response = requests.get(url, timeout=REMOTE_FETCH_TIMEOUT)
        except requests.RequestException as e:
            raise MediaFetchError(f"Fetch failed: {e}") from e

        if not response.ok:
            raise MediaFetchError(f"Fetch failed with status {response.status_code}")

        content_type = response.headers.get('Content-Type', '')
        if not content_type.startswith('image/'):
            raise MediaFetchError(f"Not an image: {content_type or 'unknown content type'}")

        return response.content, content_type


# Global instance
media_pipeline = MediaPipeline()
