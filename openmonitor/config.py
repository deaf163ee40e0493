"""
Design (config.py)
- Purpose: Centralize constants and configuration.
- Inputs: None.
- Outputs: Constants (URLs, encodings, intervals, notification settings).
- Side effects: None.
- Thread-safety: N/A (read-only constants).
"""

# Remote server directory (tab-delimited, GBK-encoded text table)
DIRECTORY_URL = "http://jx3comm.xoyocdn.com/jx3hd/zhcn_hd/serverlist/serverlist.ini"
DIRECTORY_ENCODING = "gbk"
HTTP_TIMEOUT_SEC = 15.0

## Probe behavior
DEFAULT_INTERVAL_MS = 100     # fixed delay between failed connection attempts
CONNECT_TIMEOUT_SEC = None    # per-attempt cap; None = OS connect timeout
PROBE_OVERALL_TIMEOUT = None  # AvailabilityProber default; None = no limit, a probe retries until the server opens

## Notifications
ALERT_TITLE = "Server open"
ALERT_TIMEOUT_SEC = 10
SOUND_FILE = "open.wav"  # Expected at openmonitor/sounds/open.wav (added to the exe with --add-data)
ALSA_DEVICE = "default"

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
