"""Allow running Pomotide as a module: python -m pomotide."""

import logging
import sys

from PyQt6.QtGui import QColor, QIcon, QPainter, QPixmap
from PyQt6.QtWidgets import QApplication

from .database.db import init_db
from .app import PomotideApp


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()
    logging.getLogger(__name__).info("Pomotide ready")

    app = QApplication(sys.argv)
    app.setApplicationName("Pomotide")
    app.setOrganizationName("Pomotide")

    # Dock icon (generated placeholder: tomato-red circle)
    icon = QPixmap(256, 256)
    icon.fill(QColor(0, 0, 0, 0))
    p = QPainter(icon)
    p.setRenderHint(QPainter.RenderHint.Antialiasing)
    p.setBrush(QColor("#EF4444"))
    p.setPen(QColor("#EF4444").darker(120))
    p.drawEllipse(16, 16, 224, 224)
    p.end()
    app.setWindowIcon(QIcon(icon))

    window = PomotideApp()
    window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
