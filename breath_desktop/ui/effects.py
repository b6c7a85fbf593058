"""Side-effect collaborators driven by SessionController signals.

All of them are best-effort: a missing platform capability is logged and the
feature is skipped, nothing here raises into the session logic.
"""
import logging
import math
import os
import platform
import struct
import tempfile
import wave
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject, Signal, QUrl
from PySide6.QtWidgets import QApplication

from ..models import CUE_DURATION_MS, CUE_FREQUENCY_HZ

logger = logging.getLogger(__name__)

IS_WIN = platform.system() == "Windows"
IS_LINUX = platform.system() == "Linux"

_SAMPLE_RATE = 44100


def write_tone_wav(path: Path, frequency: int = CUE_FREQUENCY_HZ, duration_ms: int = CUE_DURATION_MS,
                   volume: float = 0.5) -> Path:
    """Write a mono 16-bit sine tone to `path`."""
    frames = int(_SAMPLE_RATE * duration_ms / 1000)
    amplitude = int(32767 * max(0.0, min(1.0, volume)))
    data = bytearray()
    for i in range(frames):
        sample = int(amplitude * math.sin(2 * math.pi * frequency * i / _SAMPLE_RATE))
        data += struct.pack("<h", sample)
    with wave.open(str(path), "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(_SAMPLE_RATE)
        w.writeframes(bytes(data))
    return path


class ToneCue(QObject):
    """Short sine tone played at every phase start. Muted until enabled."""

    def __init__(self, enabled: bool = False, wav_path: Optional[Path] = None, parent=None):
        super().__init__(parent)
        self.enabled = bool(enabled)
        self._wav_path = wav_path or Path(tempfile.gettempdir()) / f"breath_cue_{CUE_FREQUENCY_HZ}hz.wav"
        self._effect = None
        self._effect_failed = False

    def set_enabled(self, enabled: bool):
        self.enabled = bool(enabled)
        if self.enabled:
            # load ahead so the first cue is not lost while the sample loads
            self._ensure_effect()

    def play(self):
        if not self.enabled:
            return
        effect = self._ensure_effect()
        if effect is None:
            try:
                QApplication.beep()
            except Exception:
                logger.exception("Error playing fallback beep")
            return
        try:
            effect.play()
        except Exception:
            logger.exception("Error playing tone")

    def _ensure_effect(self):
        if self._effect is not None or self._effect_failed:
            return self._effect
        try:
            from PySide6.QtMultimedia import QSoundEffect
            if not self._wav_path.exists():
                write_tone_wav(self._wav_path)
            effect = QSoundEffect(self)
            effect.setSource(QUrl.fromLocalFile(os.fspath(self._wav_path)))
            effect.setVolume(0.5)
            self._effect = effect
        except Exception as e:
            # no multimedia backend or unwritable temp dir
            logger.warning("Tone playback unavailable, falling back to system beep: %s", e)
            self._effect_failed = True
        return self._effect


class ScreenWakeLock(QObject):
    """Keeps the display awake while a session runs.

    Windows uses SetThreadExecutionState, Linux the freedesktop ScreenSaver
    inhibit call over D-Bus. Elsewhere the lock is simply not supported.
    """

    _ES_CONTINUOUS = 0x80000000
    _ES_DISPLAY_REQUIRED = 0x00000002

    def __init__(self, app_name: str = "Relaxing Breathing", parent=None):
        super().__init__(parent)
        self.app_name = app_name
        self._active = False
        self._cookie = None
        self._iface = None

    def is_active(self) -> bool:
        return self._active

    def acquire(self):
        if self._active:
            return
        try:
            if IS_WIN:
                import ctypes
                ctypes.windll.kernel32.SetThreadExecutionState(self._ES_CONTINUOUS | self._ES_DISPLAY_REQUIRED)
                self._active = True
            elif IS_LINUX:
                self._active = self._dbus_inhibit()
            else:
                logger.info("Wake lock not supported on %s", platform.system())
                return
        except Exception as e:
            logger.error("Failed to acquire wake lock: %s", e)
            return
        if self._active:
            logger.info("Wake lock is active")

    def release(self):
        if not self._active:
            return
        try:
            if IS_WIN:
                import ctypes
                ctypes.windll.kernel32.SetThreadExecutionState(self._ES_CONTINUOUS)
            elif IS_LINUX and self._iface is not None and self._cookie is not None:
                self._iface.call("UnInhibit", self._cookie)
            logger.info("Wake lock released")
        except Exception as e:
            logger.error("Failed to release wake lock: %s", e)
        finally:
            self._active = False
            self._cookie = None

    def _dbus_inhibit(self) -> bool:
        try:
            from PySide6.QtDBus import QDBusConnection, QDBusInterface, QDBusMessage
        except ImportError:
            logger.info("Wake lock not supported: QtDBus unavailable")
            return False
        bus = QDBusConnection.sessionBus()
        if not bus.isConnected():
            logger.info("Wake lock not supported: no D-Bus session bus")
            return False
        iface = QDBusInterface("org.freedesktop.ScreenSaver", "/org/freedesktop/ScreenSaver",
                               "org.freedesktop.ScreenSaver", bus)
        if not iface.isValid():
            logger.info("Wake lock not supported: ScreenSaver service not found")
            return False
        reply = iface.call("Inhibit", self.app_name, "Breathing session in progress")
        if reply.type() == QDBusMessage.MessageType.ErrorMessage or not reply.arguments():
            logger.error("Failed to acquire wake lock: %s", reply.errorMessage())
            return False
        self._iface = iface
        self._cookie = reply.arguments()[0]
        return True


class ConnectivityNotifier(QObject):
    """Reports online/offline transitions through QNetworkInformation."""

    went_offline = Signal()
    came_online = Signal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self._info = None
        self._online = True

    def start(self) -> bool:
        try:
            from PySide6.QtNetwork import QNetworkInformation
            if not QNetworkInformation.loadDefaultBackend():
                logger.info("Network information backend unavailable; assuming online")
                return False
            info = QNetworkInformation.instance()
            if info is None:
                return False
            self._info = info
            self._online = self._reachable(info.reachability())
            info.reachabilityChanged.connect(self._on_reachability_changed)
            return True
        except Exception as e:
            logger.warning("Connectivity monitoring disabled: %s", e)
            return False

    def is_online(self) -> bool:
        return self._online

    @staticmethod
    def _reachable(reachability) -> bool:
        from PySide6.QtNetwork import QNetworkInformation
        return reachability not in (QNetworkInformation.Reachability.Disconnected,)

    def _on_reachability_changed(self, reachability):
        self.set_online(self._reachable(reachability))

    def set_online(self, online: bool):
        online = bool(online)
        if online == self._online:
            return
        self._online = online
        if online:
            logger.info("Back online")
            self.came_online.emit()
        else:
            logger.info("Offline")
            self.went_offline.emit()
