"""Url helpers shared by the recorder and the read queries.

A tracked url is never the full url, only the site-relative path: no
scheme, no host, no install path and no query. So
``https://www.example.com/omeka/items/show/1?page=2`` is stored as
``/items/show/1`` when the site is installed under ``/omeka``, and the home
page as ``/``.
"""

from urllib.parse import urlsplit

# Direct file deliveries. "/files/fullsize/" is kept for sites migrated from
# the older layout.
DOWNLOAD_PREFIXES = ("/files/original/", "/files/large/", "/files/fullsize/")


def normalize_url(raw: str | None, base_path: str = "") -> str:
    """Reduce ``raw`` to a canonical site-relative path.

    Returns an empty string when the value cannot be a local path, so that
    external garbage (embedded snippets, forged beacons) is never stored.
    """
    if raw is None:
        return ""
    raw = raw.strip()
    if not raw:
        return ""

    path = urlsplit(raw).path
    base_path = base_path.rstrip("/")
    if base_path and (path == base_path or path.startswith(base_path + "/")):
        path = path[len(base_path) :]

    if len(path) > 1:
        path = path.rstrip("/") or "/"
    if not path:
        return "/"

    if not path.startswith("/") or path.startswith("//"):
        return ""
    return path


def is_download(url: str) -> bool:
    """Check if a normalized url is a direct file download rather than a page."""
    return url.startswith(DOWNLOAD_PREFIXES)


def download_url(storage_kind: str, filename: str) -> str:
    return f"/files/{storage_kind}/{filename}"
