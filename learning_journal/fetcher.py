# fetcher.py
import os

import requests

FETCH_TIMEOUT = float(os.getenv("FETCH_TIMEOUT", "30"))

HEADERS = {
    "User-Agent": "learning-journal/0.1",
    "Accept": "application/pdf,*/*;q=0.8",
}


class FetchError(Exception):
    pass


def fetch_pdf(url: str) -> bytes:
    """GET the document behind `url` and return its raw bytes."""
    try:
        resp = requests.get(url, headers=HEADERS, timeout=FETCH_TIMEOUT, allow_redirects=True)
    except requests.RequestException as e:
        raise FetchError(f"Failed to fetch PDF from {url}: {e}")
    if not resp.ok:
        raise FetchError(f"Failed to fetch PDF from {url}: HTTP {resp.status_code} {resp.reason}")
    if not resp.content:
        raise FetchError(f"Failed to fetch PDF from {url}: empty body")
    return resp.content
