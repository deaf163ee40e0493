"""
Design (utils.py)
- Purpose: Reusable helpers: bundled resource path detection (PyInstaller), IPv4 parsing,
           elapsed-time formatting for log lines.
- Inputs: Various helper parameters (filename, address text, seconds).
- Outputs: Helper results (paths, addresses, strings).
- Side effects: None.
- Thread-safety: Stateless; safe to call from any thread.
"""

import os
import sys
from ipaddress import IPv4Address, AddressValueError

from .errors import ConfigurationError


def get_resource_path(filename: str) -> str:
    """
    Purpose: Resolve a bundled file for both dev (script) and PyInstaller (frozen) runs.
    Inputs: filename (e.g., "open.wav")
    Outputs: Path usable with open()/wave.open().
    Side Effects: None.
    Thread-safety: Safe.
    """
    if getattr(sys, "frozen", False) and hasattr(sys, "_MEIPASS"):
        return os.path.join(sys._MEIPASS, filename)  # type: ignore[attr-defined]
    # In development, sounds live at openmonitor/sounds/ relative to project root
    here = os.path.dirname(os.path.abspath(__file__))
    return os.path.join(here, "sounds", filename)


def parse_ipv4(address: str | IPv4Address) -> IPv4Address:
    """
    Purpose: Turn directory address text into an IPv4Address.
    Inputs: address (str, or an IPv4Address which is returned as-is)
    Outputs: IPv4Address
    Side Effects: None.
    Raises: ConfigurationError if the text is not a dotted-quad IPv4 address.
    """
    if isinstance(address, IPv4Address):
        return address
    try:
        return IPv4Address(str(address).strip())
    except AddressValueError as exc:
        raise ConfigurationError(f"invalid IPv4 address {address!r}") from exc


def format_elapsed(seconds: float) -> str:
    """Render a duration as 1h02m03s / 2m03s / 3.4s for log lines."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h{minutes:02d}m{secs:02d}s"
    return f"{minutes}m{secs:02d}s"
