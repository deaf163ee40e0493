"""
Design (notifier.py)
- Purpose: Tell the operator a server has opened: play a short sound and raise a
           desktop notification.
- Inputs: Server name; sound file path and alert title from config (overridable).
- Outputs: None.
- Side effects: Audio playback on a daemon thread (ALSA); OS notification via plyer.
- Thread-safety: notify() is called from the monitor coroutine; playback serializes on
                 its own lock.
Both side effects are fire-and-forget: a failure is logged and never propagated.
"""

import logging
import threading
import wave
from typing import Callable, Optional

from plyer import notification

from .config import ALERT_TITLE, ALERT_TIMEOUT_SEC, ALSA_DEVICE

logger = logging.getLogger(__name__)

try:
    import alsaaudio
except ImportError:
    alsaaudio = None  # type: ignore[assignment]
    logger.debug("pyalsaaudio not installed; notification sound disabled")

AlertFn = Callable[[str, str], None]

_SAMPLE_FORMATS = {
    1: "PCM_FORMAT_U8",
    2: "PCM_FORMAT_S16_LE",
    3: "PCM_FORMAT_S24_3LE",
    4: "PCM_FORMAT_S32_LE",
}


def desktop_alert(title: str, message: str, timeout: int = ALERT_TIMEOUT_SEC) -> None:
    notification.notify(
        title=title,
        message=message,
        app_name="Open Monitor",
        timeout=timeout,
    )


class SoundPlayer:
    """
    Plays one short WAV clip through an ALSA device.

    The clip is read once, up front. A missing or unreadable file, or a missing
    pyalsaaudio, leaves the player disabled (play() does nothing) with a warning.
    """

    def __init__(self, path: str, device: str = ALSA_DEVICE):
        self.path = path
        self.device = device
        self._lock = threading.Lock()
        self._frames: Optional[bytes] = None
        self.channels = 1
        self.sample_rate = 0
        self.sample_width = 2
        if alsaaudio is None:
            logger.warning("pyalsaaudio not installed; notification sound disabled")
            return
        try:
            with wave.open(path, "rb") as wav:
                self.channels = wav.getnchannels()
                self.sample_rate = wav.getframerate()
                self.sample_width = wav.getsampwidth()
                self._frames = wav.readframes(wav.getnframes())
        except (OSError, EOFError, wave.Error) as exc:
            logger.warning("Could not load notification sound %s: %s", path, exc)
            self._frames = None

    @property
    def enabled(self) -> bool:
        return self._frames is not None and self.sample_width in _SAMPLE_FORMATS

    def play(self) -> None:
        """Start playback in the background and return immediately."""
        if not self.enabled:
            return
        threading.Thread(target=self._play_sync, name="open-sound", daemon=True).start()

    def _play_sync(self) -> None:
        with self._lock:
            try:
                period = 1024
                pcm = alsaaudio.PCM(
                    type=alsaaudio.PCM_PLAYBACK,
                    mode=alsaaudio.PCM_NORMAL,
                    device=self.device,
                    channels=self.channels,
                    rate=self.sample_rate,
                    format=getattr(alsaaudio, _SAMPLE_FORMATS[self.sample_width]),
                    periodsize=period,
                )
                try:
                    chunk_bytes = period * self.channels * self.sample_width
                    for i in range(0, len(self._frames), chunk_bytes):
                        pcm.write(self._frames[i : i + chunk_bytes])
                finally:
                    pcm.close()
            except alsaaudio.ALSAAudioError as exc:
                logger.warning("Playback on %s failed: %s", self.device, exc)
            except Exception:
                # runs on a daemon thread; nothing upstream would see it
                logger.exception("Audio playback error")


class Notifier:
    def __init__(
        self,
        sound: Optional[SoundPlayer] = None,
        alert: Optional[AlertFn] = desktop_alert,
        title: str = ALERT_TITLE,
    ):
        self.sound = sound
        self.alert = alert
        self.title = title

    def notify(self, name: str) -> None:
        """
        Purpose: Announce that server `name` is open.
        Side Effects: Sound first, then the desktop alert; one failing does not skip the other.
        """
        message = f"{name} is open!"
        logger.info(message)
        if self.sound is not None:
            try:
                self.sound.play()
            except Exception:
                logger.exception("Could not play notification sound")
        if self.alert is not None:
            try:
                self.alert(self.title, message)
            except Exception:
                logger.exception("Desktop notification failed")
