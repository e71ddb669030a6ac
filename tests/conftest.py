import os

os.environ.setdefault('QT_QPA_PLATFORM', 'offscreen')

from PyQt5.QtWidgets import QApplication

# One shared QApplication for the whole session: the controller tests reuse an
# existing QCoreApplication instance, and the view tests need it to be a
# QApplication so widgets can be constructed.
_app = QApplication.instance() or QApplication([])
