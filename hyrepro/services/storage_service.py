"""
Storage Service
Uploads school assets to Supabase Storage and downloads remote resumes
"""
import logging
import re
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlparse

import httpx

from hyrepro.core.config import settings

logger = logging.getLogger(__name__)

ALLOWED_BUCKETS = ("profiles", "school", "avatars", "documents")
UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


class DownloadError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@dataclass
class StoredFile:
    path: str
    public_url: str


def sanitize_filename(filename: str) -> str:
    return UNSAFE_FILENAME_CHARS.sub("_", filename)


class StorageService:
    """
    Service for Supabase Storage buckets and remote file fetches

    Uploads go through the service-role client held by the session bridge.
    """

    def upload(self, client, bucket: str, file_name: str, content: bytes,
               content_type: Optional[str] = None) -> StoredFile:
        if bucket not in ALLOWED_BUCKETS:
            raise ValueError("Invalid bucket name")

        file_options = {"cache-control": "3600", "upsert": "true"}
        if content_type:
            file_options["content-type"] = content_type

        result = client.storage.from_(bucket).upload(file_name, content, file_options=file_options)
        path = getattr(result, "path", None) or file_name
        public_url = client.storage.from_(bucket).get_public_url(path)
        logger.info("Uploaded %s to bucket %s", path, bucket)
        return StoredFile(path=path, public_url=public_url)

    def allowed_hosts(self) -> List[str]:
        hosts = [h.lower() for h in settings.RESUME_HOSTS]
        supabase_host = urlparse(settings.SUPABASE_URL).hostname
        if supabase_host:
            hosts.append(supabase_host.lower())
        return hosts

    def is_allowed_url(self, url: str) -> bool:
        parsed = urlparse(url)
        return parsed.scheme == "https" and (parsed.hostname or "").lower() in self.allowed_hosts()

    def download(self, url: str) -> bytes:
        """
        Download a file (resume PDF) from a public URL

        Raises:
            DownloadError: the remote server answered with a non-200 status
        """
        with httpx.Client(timeout=30.0) as client:
            response = client.get(
                url,
                headers={"User-Agent": "Mozilla/5.0 (compatible; ResumeDownloader/1.0)"},
            )

        if response.status_code != 200:
            logger.warning("Failed to download %s: HTTP %s", url, response.status_code)
            raise DownloadError(response.status_code, f"Failed to fetch file: {response.status_code}")
        return response.content


# Singleton instance
storage_service = StorageService()
