import logging
from pathlib import Path

from PySide6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QPushButton, QLabel, QCheckBox, QLineEdit, QSlider
)
from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QFont, QIcon

from .. import phase_clock
from ..models import (
    EXHALE_RANGE, OFFLINE_BANNER_MS, PRESET_MINUTES, SessionConfig, SessionState, SessionStatus,
    parse_time_limit, sanitize_time_limit,
)
from .effects import ConnectivityNotifier, ScreenWakeLock, ToneCue
from .session import SessionController

logger = logging.getLogger(__name__)

# Simple translation mapping for UI strings
_TRANSLATIONS = {
    "en": {
        "title": "Relaxing Breathing",
        "total_fmt": "Total Time: {time}",
        "Inhale": "Inhale",
        "Exhale": "Exhale",
        "sound_on": "Sound On",
        "sound_off": "Sound Off",
        "limit_placeholder": "Time limit (minutes)",
        "limit_label": "Minutes (optional)",
        "prompt": "Press start to begin",
        "complete": "Complete!",
        "start": "Start",
        "pause": "Pause",
        "exhale_fmt": "Exhale Time (seconds): {seconds}",
        "back": "Back to Start",
        "preset_fmt": "{minutes} min",
        "offline": "You are offline. The timer keeps working.",
    },
    "zh": {
        "title": "放松呼吸",
        "total_fmt": "总时长：{time}",
        "Inhale": "吸气",
        "Exhale": "呼气",
        "sound_on": "声音：开",
        "sound_off": "声音：关",
        "limit_placeholder": "时长限制（分钟）",
        "limit_label": "分钟（可选）",
        "prompt": "点击开始",
        "complete": "完成！",
        "start": "开始",
        "pause": "暂停",
        "exhale_fmt": "呼气时长（秒）：{seconds}",
        "back": "返回",
        "preset_fmt": "{minutes} 分钟",
        "offline": "当前处于离线状态，计时器仍可使用。",
    },
}


class BreathingWindow(QMainWindow):
    """Renders the session and forwards user actions to the SessionController.

    Collaborators may be injected; by default the window creates its own.
    """

    def __init__(self, controller: SessionController = None, cue: ToneCue = None,
                 wake_lock: ScreenWakeLock = None, connectivity: ConnectivityNotifier = None, lang: str = "en"):
        super().__init__()
        self.lang = lang if lang in _TRANSLATIONS else "en"
        self.controller = controller or SessionController(parent=self)
        self.cue_player = cue or ToneCue(parent=self)
        self.wake_lock = wake_lock or ScreenWakeLock(app_name=self._tr("title"), parent=self)
        self.connectivity = connectivity or ConnectivityNotifier(parent=self)

        self.setWindowTitle(self._tr("title"))
        try:
            self._apply_app_icon()
        except Exception:
            logger.debug("No application icon applied", exc_info=True)
        self.resize(360, 520)

        central = QWidget()
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(12)

        # offline banner, hidden until connectivity reports a drop
        self.offline_lbl = QLabel(self._tr("offline"))
        self.offline_lbl.setAlignment(Qt.AlignCenter)
        self.offline_lbl.setWordWrap(True)
        self.offline_lbl.setStyleSheet("background-color: #f8d7da; color: #721c24; padding: 6px; border-radius: 4px;")
        self.offline_lbl.setVisible(False)
        layout.addWidget(self.offline_lbl)
        self._offline_timer = QTimer(self)
        self._offline_timer.setSingleShot(True)
        self._offline_timer.setInterval(OFFLINE_BANNER_MS)
        self._offline_timer.timeout.connect(self._hide_offline_banner)

        self.title_lbl = QLabel(self._tr("title"))
        self.title_lbl.setAlignment(Qt.AlignCenter)
        tf = QFont(self.title_lbl.font())
        tf.setPointSize(max(14, tf.pointSize() + 6))
        tf.setBold(True)
        self.title_lbl.setFont(tf)
        layout.addWidget(self.title_lbl)

        # running view
        self.timer_lbl = QLabel("")
        self.timer_lbl.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.timer_lbl)
        self.instruction_lbl = QLabel("")
        self.instruction_lbl.setAlignment(Qt.AlignCenter)
        inf = QFont(self.instruction_lbl.font())
        inf.setPointSize(max(14, inf.pointSize() + 8))
        self.instruction_lbl.setFont(inf)
        layout.addWidget(self.instruction_lbl)
        self.countdown_lbl = QLabel("")
        self.countdown_lbl.setFixedSize(120, 120)
        self.countdown_lbl.setAlignment(Qt.AlignCenter)
        self.countdown_lbl.setStyleSheet("background-color: #4a90d9; color: white; border-radius: 60px;")
        cf = QFont(self.countdown_lbl.font())
        cf.setPointSize(max(18, cf.pointSize() + 14))
        self.countdown_lbl.setFont(cf)
        layout.addWidget(self.countdown_lbl, alignment=Qt.AlignHCenter)

        # idle settings
        self.settings_panel = QWidget()
        settings_layout = QVBoxLayout(self.settings_panel)
        settings_layout.setContentsMargins(0, 0, 0, 0)
        self.sound_check = QCheckBox(self._tr("sound_off"))
        self.sound_check.setChecked(self.cue_player.enabled)
        self.sound_check.toggled.connect(self._on_sound_toggled)
        settings_layout.addWidget(self.sound_check)
        limit_row = QHBoxLayout()
        self.limit_edit = QLineEdit()
        self.limit_edit.setPlaceholderText(self._tr("limit_placeholder"))
        self.limit_edit.setInputMethodHints(Qt.ImhDigitsOnly)
        self.limit_edit.textEdited.connect(self._on_limit_edited)
        limit_row.addWidget(self.limit_edit)
        limit_row.addWidget(QLabel(self._tr("limit_label")))
        settings_layout.addLayout(limit_row)
        self.prompt_lbl = QLabel(self._tr("prompt"))
        self.prompt_lbl.setAlignment(Qt.AlignCenter)
        settings_layout.addWidget(self.prompt_lbl)
        layout.addWidget(self.settings_panel)

        self.complete_lbl = QLabel(self._tr("complete"))
        self.complete_lbl.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.complete_lbl)

        self.toggle_btn = QPushButton(self._tr("start"))
        self.toggle_btn.clicked.connect(self._on_toggle_play)
        layout.addWidget(self.toggle_btn)

        # exhale slider
        self.exhale_panel = QWidget()
        exhale_layout = QVBoxLayout(self.exhale_panel)
        exhale_layout.setContentsMargins(0, 0, 0, 0)
        self.exhale_lbl = QLabel("")
        exhale_layout.addWidget(self.exhale_lbl)
        self.exhale_slider = QSlider(Qt.Horizontal)
        self.exhale_slider.setRange(*EXHALE_RANGE)
        self.exhale_slider.setSingleStep(1)
        self.exhale_slider.setValue(self.controller.config.exhale_seconds)
        self.exhale_slider.valueChanged.connect(self._on_exhale_changed)
        exhale_layout.addWidget(self.exhale_slider)
        layout.addWidget(self.exhale_panel)

        self.reset_btn = QPushButton(self._tr("back"))
        self.reset_btn.clicked.connect(self._on_reset_clicked)
        layout.addWidget(self.reset_btn)

        # preset shortcuts
        self.preset_panel = QWidget()
        preset_layout = QHBoxLayout(self.preset_panel)
        preset_layout.setContentsMargins(0, 0, 0, 0)
        self.preset_btns = {}
        for minutes in PRESET_MINUTES:
            btn = QPushButton(self._tr("preset_fmt").format(minutes=minutes))
            btn.clicked.connect(lambda _=False, m=minutes: self._on_preset_clicked(m))
            preset_layout.addWidget(btn)
            self.preset_btns[minutes] = btn
        layout.addWidget(self.preset_panel)
        layout.addStretch()

        # 连接信号
        self.controller.render_requested.connect(self.render)
        self.controller.cue.connect(self.cue_player.play)
        # wake lock requests are fire-and-forget relative to the state change
        self.controller.wake_lock_acquire.connect(self.wake_lock.acquire, Qt.QueuedConnection)
        self.controller.wake_lock_release.connect(self.wake_lock.release, Qt.QueuedConnection)
        self.connectivity.went_offline.connect(self._show_offline_banner)
        self.connectivity.came_online.connect(self._hide_offline_banner)

        self.render(self.controller.state, self.controller.config)

    def start_monitoring(self):
        """Begin connectivity monitoring and show the banner if already offline."""
        self.connectivity.start()
        if not self.connectivity.is_online():
            self._show_offline_banner()

    def render(self, state: SessionState, config: SessionConfig):
        running = state.status is SessionStatus.RUNNING
        complete = state.status is SessionStatus.COMPLETE
        idle = not running and not complete

        self.timer_lbl.setVisible(running)
        self.instruction_lbl.setVisible(running)
        self.countdown_lbl.setVisible(running)
        if running:
            self.timer_lbl.setText(self._tr("total_fmt").format(time=phase_clock.format_time(state.elapsed_seconds)))
            self.instruction_lbl.setText(self._tr(phase_clock.instruction(state.phase)))
            self.countdown_lbl.setText(str(state.countdown))

        self.settings_panel.setVisible(idle)
        self.exhale_panel.setVisible(idle)
        self.preset_panel.setVisible(idle)
        if idle:
            self._sync_limit_edit(config)
            self.exhale_lbl.setText(self._tr("exhale_fmt").format(seconds=config.exhale_seconds))
            if self.exhale_slider.value() != config.exhale_seconds:
                self.exhale_slider.blockSignals(True)
                self.exhale_slider.setValue(config.exhale_seconds)
                self.exhale_slider.blockSignals(False)

        self.complete_lbl.setVisible(complete)
        self.reset_btn.setVisible(complete)
        self.toggle_btn.setVisible(not complete)
        self.toggle_btn.setText(self._tr("pause") if running else self._tr("start"))

    def _tr(self, key: str) -> str:
        try:
            return _TRANSLATIONS.get(self.lang, {}).get(key, key)
        except Exception:
            return key

    def _apply_app_icon(self):
        """Use assets/images/icon_desktop.* as the window icon when present."""
        project_root = Path(__file__).resolve().parents[2]
        icons_dir = project_root / "assets" / "images"
        if not icons_dir.exists():
            return
        for ext in ("png", "ico", "svg", "icns"):
            p = icons_dir / f"icon_desktop.{ext}"
            if p.exists():
                ico = QIcon(str(p))
                self.setWindowIcon(ico)
                QApplication.setWindowIcon(ico)
                return

    def _sync_limit_edit(self, config: SessionConfig):
        # keep what the user typed unless it disagrees with the stored limit (e.g. after reset)
        if parse_time_limit(self.limit_edit.text()) != (config.time_limit_minutes or None):
            self.limit_edit.setText(str(config.time_limit_minutes) if config.time_limit_minutes else "")

    def _on_toggle_play(self):
        if self.controller.status is SessionStatus.RUNNING:
            self.controller.pause()
        else:
            self.controller.start()

    def _on_preset_clicked(self, minutes: int):
        self.controller.start_with_preset(minutes)

    def _on_reset_clicked(self):
        self.controller.reset()

    def _on_sound_toggled(self, checked: bool):
        self.cue_player.set_enabled(checked)
        self.sound_check.setText(self._tr("sound_on") if checked else self._tr("sound_off"))

    def _on_limit_edited(self, text: str):
        cleaned = sanitize_time_limit(text)
        if cleaned != text:
            pos = max(0, self.limit_edit.cursorPosition() - (len(text) - len(cleaned)))
            self.limit_edit.setText(cleaned)
            self.limit_edit.setCursorPosition(pos)
        self.controller.update_config(time_limit_minutes=parse_time_limit(cleaned))

    def _on_exhale_changed(self, value: int):
        self.controller.update_config(exhale_seconds=int(value))

    def _show_offline_banner(self):
        self.offline_lbl.setVisible(True)
        self._offline_timer.start()

    def _hide_offline_banner(self):
        self._offline_timer.stop()
        self.offline_lbl.setVisible(False)

    def closeEvent(self, event):
        if self.controller.status is SessionStatus.RUNNING:
            self.controller.pause()
        # queued release may not run after the window closes
        self.wake_lock.release()
        super().closeEvent(event)
