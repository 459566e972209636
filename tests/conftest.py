import os
import sys
from pathlib import Path

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtWidgets import QApplication, QMessageBox, QVBoxLayout, QWidget
from PySide6.QtCore import QSettings
import pytest

# Ensure repository root is on sys.path so tests can import top-level packages
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from infra.settings_store import CaptureSettings  # noqa: E402
from views.event_bus import HostBridge  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def qapp():
    """Ensure a QApplication exists for all tests."""
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


@pytest.fixture(autouse=True)
def disable_dialogs(monkeypatch):
    """Keep modal dialogs from blocking tests."""
    monkeypatch.setattr(QMessageBox, "critical", lambda *a, **k: None)
    monkeypatch.setattr(QMessageBox, "warning", lambda *a, **k: None)
    yield


@pytest.fixture(autouse=True)
def qsettings_tmpdir(tmp_path, monkeypatch):
    """Force QSettings to use an INI file in a temporary directory for isolation."""
    QSettings.setDefaultFormat(QSettings.IniFormat)
    QSettings.setPath(QSettings.IniFormat, QSettings.UserScope, str(tmp_path))
    yield


@pytest.fixture
def bridge():
    b = HostBridge()
    yield b
    b.deleteLater()


@pytest.fixture
def plot_area(qtbot):
    area = QWidget()
    area.setObjectName("Plot")
    QVBoxLayout(area)
    qtbot.addWidget(area)
    return area


@pytest.fixture
def fast_settings():
    """Short timings so tests do not sit on the default delays."""
    return CaptureSettings(construction_delay_ms=20, ready_timeout_ms=0)
