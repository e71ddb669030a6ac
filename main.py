import sys
import os

import structlog
from PyQt5.QtWidgets import QApplication
from PyQt5.QtGui import QIcon

import logs
from config import Settings
from controller import MainController

logger = structlog.get_logger()


def main():
    settings = Settings.from_env()
    logs.configure(settings.log_level, json=settings.log_json)
    logger.info("till_starting", api_url=settings.api_url, receipts_dir=settings.receipts_dir)

    app = QApplication(sys.argv)

    # Optional theme and icon shipped next to this file
    qss_path = os.path.join(os.path.dirname(__file__), "assets", "themes", "checkout.qss")
    if os.path.exists(qss_path):
        with open(qss_path, 'r', encoding='utf-8') as fh:
            app.setStyleSheet(fh.read())
    icon_path = os.path.join(os.path.dirname(__file__), 'assets', 'images', 'checkout.png')
    if os.path.exists(icon_path):
        app.setWindowIcon(QIcon(icon_path))

    window = MainController(settings)
    window.show()

    sys.exit(app.exec_())


if __name__ == "__main__":
    main()
