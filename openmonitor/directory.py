"""
Design (directory.py)
- Purpose: Download the remote server list and decode it into a Directory (name -> entry).
- Inputs: Directory URL (from config, overridable), optional httpx.AsyncClient.
- Outputs: Directory dict, built fresh on every call.
- Side effects: One HTTP GET per fetch; no retries (failures surface immediately).
- Thread-safety: Returned dict is read-only by convention; safe to share once built.

Row layout (tab-delimited, one server per line):
    <ignored> \t <name> \t <ignored> \t <address> \t <port> [\t ...]
"""

import logging
from typing import Optional

import httpx

from .config import DIRECTORY_URL, DIRECTORY_ENCODING, HTTP_TIMEOUT_SEC
from .errors import DecodeError, TransportError
from .models import Directory, DirectoryEntry

logger = logging.getLogger(__name__)

NAME_FIELD = 1
ADDRESS_FIELD = 3
PORT_FIELD = 4
MAX_PORT = 65535


def decode_payload(raw: bytes, encoding: str = DIRECTORY_ENCODING) -> str:
    """
    Decode the raw body strictly; any undecodable byte fails the whole fetch.
    """
    try:
        return raw.decode(encoding)
    except UnicodeDecodeError as exc:
        raise DecodeError(f"directory payload is not valid {encoding}: {exc}") from exc


def _parse_port(text: str, lineno: int) -> int:
    if not (text.isascii() and text.isdigit()):
        raise DecodeError(f"line {lineno}: port {text!r} is not numeric")
    port = int(text)
    if port > MAX_PORT:
        raise DecodeError(f"line {lineno}: port {port} out of range")
    return port


def parse_directory(text: str) -> Directory:
    """
    Parse the tab-delimited server list.

    Blank lines (including the one a trailing newline leaves behind) are skipped.
    A short row or a bad port raises DecodeError; nothing partial is returned.
    A name listed twice keeps its last row.
    """
    directory: Directory = {}
    for lineno, line in enumerate(text.split("\n"), start=1):
        if line.endswith("\r"):
            line = line[:-1]
        if not line.strip():
            continue
        fields = line.split("\t")
        if len(fields) <= PORT_FIELD:
            raise DecodeError(
                f"line {lineno}: expected at least {PORT_FIELD + 1} fields, got {len(fields)}"
            )
        name = fields[NAME_FIELD]
        directory[name] = DirectoryEntry(
            name=name,
            address=fields[ADDRESS_FIELD],
            port=_parse_port(fields[PORT_FIELD], lineno),
        )
    return directory


async def fetch_directory(
    url: str = DIRECTORY_URL,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = HTTP_TIMEOUT_SEC,
    encoding: str = DIRECTORY_ENCODING,
) -> Directory:
    """
    Purpose: GET the server list and parse it.
    Inputs: url, optional client (caller keeps ownership), timeout, payload encoding.
    Outputs: Directory
    Raises: TransportError on network failure or non-2xx status; DecodeError on bad payload.
    """
    logger.info("Downloading server directory from %s", url)
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout) as own_client:
                resp = await own_client.get(url, follow_redirects=True)
        else:
            resp = await client.get(url, follow_redirects=True)
        resp.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise TransportError(f"directory request failed with HTTP {exc.response.status_code}") from exc
    except httpx.HTTPError as exc:
        raise TransportError(f"directory request failed: {exc}") from exc

    directory = parse_directory(decode_payload(resp.content, encoding))
    logger.info("Directory lists %d server(s)", len(directory))
    return directory
