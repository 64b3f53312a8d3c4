import io
import ipaddress
import logging
import socket
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin, urlparse

import requests
from PIL import Image, ExifTags, UnidentifiedImageError

from app.core.config import MAX_IMAGE_BYTES, IMAGE_FETCH_TIMEOUT_SECONDS
from app.core.exceptions import InvalidInput

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = {"JPEG", "PNG", "WEBP", "GIF"}

MAX_REDIRECTS = 3
REDIRECT_STATUSES = {301, 302, 303, 307, 308}

# EXIF tags worth handing to the reasoning service as context
CONTEXT_TAGS = ("Software", "Make", "Model", "DateTime", "Artist", "ImageDescription")


@dataclass
class ImageInput:
    data: bytes
    mime_type: str
    filename: Optional[str] = None
    source_url: Optional[str] = None


class ImageService:
    """
    Turns an uploaded file or a remote image URL into bytes the reasoning
    service can inline, and pulls embedded technical metadata out of it.
    """

    def __init__(self, max_bytes: int = MAX_IMAGE_BYTES, timeout: int = IMAGE_FETCH_TIMEOUT_SECONDS):
        self.max_bytes = max_bytes
        self.timeout = timeout

    def from_upload(self, file_content: bytes, content_type: Optional[str], filename: Optional[str]) -> ImageInput:
        """
        Validate an uploaded image.

        Args:
            file_content (bytes): Raw upload
            content_type (str): Declared MIME type (may be wrong or missing)
            filename (str): Original filename, for logging only

        Returns:
            ImageInput: Validated image with its detected MIME type
        """
        if content_type and not content_type.startswith("image/") and content_type != "application/octet-stream":
            raise InvalidInput("file", f"unsupported file type {content_type}")
        mime_type = self._validate(file_content)
        logger.info("Accepted uploaded image %s (%s, %d bytes)", filename, mime_type, len(file_content))
        return ImageInput(data=file_content, mime_type=mime_type, filename=filename)

    def from_url(self, url: str) -> ImageInput:
        """
        Download a remote image reference.

        Only public addresses are fetched. Redirects are followed by hand so
        every hop is checked, and the body is streamed up to max_bytes.

        Args:
            url (str): http(s) URL of the image

        Returns:
            ImageInput: Validated image, remembering where it came from
        """
        target = url
        for _ in range(MAX_REDIRECTS + 1):
            self._check_public_host(target)
            try:
                response = requests.get(target, timeout=self.timeout, stream=True, allow_redirects=False)
            except requests.exceptions.RequestException as e:
                logger.warning("Image download failed for %s: %s", target, e)
                raise InvalidInput("image_url", "image could not be downloaded") from e

            try:
                if response.status_code in REDIRECT_STATUSES:
                    location = response.headers.get("Location")
                    if not location:
                        raise InvalidInput("image_url", "redirect without a location")
                    target = urljoin(target, location)
                    continue
                if response.status_code != 200:
                    raise InvalidInput("image_url", f"image download returned {response.status_code}")
                data = self._read_limited(response)
            finally:
                response.close()

            mime_type = self._validate(data)
            return ImageInput(data=data, mime_type=mime_type, source_url=url)

        raise InvalidInput("image_url", "too many redirects")

    def _check_public_host(self, url: str):
        parsed = urlparse(url)
        if parsed.scheme.lower() not in ("http", "https") or not parsed.hostname:
            raise InvalidInput("image_url", "must be an http(s) URL")

        try:
            port = parsed.port or (443 if parsed.scheme.lower() == "https" else 80)
            addresses = socket.getaddrinfo(parsed.hostname, port, proto=socket.IPPROTO_TCP)
        except (socket.gaierror, UnicodeError, ValueError) as e:
            raise InvalidInput("image_url", f"host {parsed.hostname} could not be resolved") from e

        for address in addresses:
            ip = ipaddress.ip_address(address[4][0].split("%")[0])
            if not ip.is_global:
                logger.warning("Refusing image fetch from %s (%s)", parsed.hostname, ip)
                raise InvalidInput("image_url", "host is not a public address")

    def _read_limited(self, response) -> bytes:
        buffer = bytearray()
        for chunk in response.iter_content(chunk_size=64 * 1024):
            buffer.extend(chunk)
            if len(buffer) > self.max_bytes:
                raise InvalidInput("image", f"larger than {self.max_bytes // (1024 * 1024)} MB")
        return bytes(buffer)

    def extract_metadata(self, image: ImageInput) -> Optional[str]:
        """
        Read EXIF fields that hint at editing or generation software.

        Returns:
            str or None: "Key: value" lines, None when the image carries no useful metadata
        """
        try:
            with Image.open(io.BytesIO(image.data)) as img:
                exif = img.getexif()
                fields = []
                for tag_id, value in exif.items():
                    tag = ExifTags.TAGS.get(tag_id, str(tag_id))
                    if tag in CONTEXT_TAGS and str(value).strip():
                        fields.append(f"{tag}: {str(value).strip()}")
                fields.append(f"Dimensions: {img.width}x{img.height}")
                for key in ("parameters", "prompt", "Software"):
                    info_value = img.info.get(key)
                    if isinstance(info_value, str) and info_value.strip():
                        fields.append(f"{key}: {info_value.strip()[:300]}")
        except (UnidentifiedImageError, OSError) as e:
            logger.debug("No metadata readable: %s", e)
            return None

        return "\n".join(fields) if fields else None

    def _validate(self, data: bytes) -> str:
        if not data:
            raise InvalidInput("image", "empty file")
        if len(data) > self.max_bytes:
            raise InvalidInput("image", f"larger than {self.max_bytes // (1024 * 1024)} MB")

        try:
            with Image.open(io.BytesIO(data)) as img:
                image_format = img.format
        except (UnidentifiedImageError, OSError) as e:
            raise InvalidInput("image", "not a readable image") from e

        if image_format not in SUPPORTED_FORMATS:
            raise InvalidInput("image", f"unsupported format {image_format}")
        return Image.MIME[image_format]
