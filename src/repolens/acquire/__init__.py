"""Repository acquisition: clone, archive extraction, local directories."""

from repolens.acquire.archive import extract_zip, is_archive
from repolens.acquire.git import RemoteRef, clone, looks_like_remote, parse_remote_url
from repolens.acquire.materializer import Materializer

__all__ = [
    "Materializer",
    "RemoteRef",
    "clone",
    "extract_zip",
    "is_archive",
    "looks_like_remote",
    "parse_remote_url",
]
