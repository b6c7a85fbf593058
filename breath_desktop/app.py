import logging
import os
import sys

from PySide6.QtWidgets import QApplication
from PySide6.QtGui import QFontDatabase
from PySide6.QtCore import qInstallMessageHandler

qt_logger = logging.getLogger("qt")

# known harmless Qt start-up messages
_QT_NOISE = (
    "Can't find filter element",
)


def _qt_msg_handler(mode, context, message):
    if any(noise in message for noise in _QT_NOISE):
        return
    qt_logger.warning(message)


def configure_logging(level: str = None):
    level = (level or os.environ.get("BREATH_LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


qInstallMessageHandler(_qt_msg_handler)
from .ui.main_window import BreathingWindow  # noqa: E402


def main():
    configure_logging()
    app = QApplication(sys.argv)
    app.setApplicationName("Relaxing Breathing")

    # 使用系统默认的通用界面字体
    try:
        app.setFont(QFontDatabase.systemFont(QFontDatabase.GeneralFont))
    except Exception:
        logging.getLogger(__name__).debug("System font not applied", exc_info=True)

    w = BreathingWindow()
    w.show()
    w.start_monitoring()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
