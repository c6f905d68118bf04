"""Download URL helpers shared by blob storage adapters."""

from cruxfeed.domain.shared.errors import NotFoundError


def make_url(scheme: str, bucket: str, path: str) -> str:
    return f"{scheme}://{bucket}/{path}"


def path_from_url(scheme: str, bucket: str, url: str) -> str:
    """
    Inverse of make_url().

    Raises:
        NotFoundError: If the URL does not belong to this bucket
    """
    prefix = f"{scheme}://{bucket}/"
    if not url.startswith(prefix) or len(url) == len(prefix):
        raise NotFoundError(f"Not a {scheme} URL for bucket {bucket}: {url}")
    return url[len(prefix):]
