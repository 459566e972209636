import sys
import os


def _configure_qt_runtime() -> None:
    os.environ.setdefault("QT_API", "PySide6")
    os.environ.setdefault("PYQTGRAPH_QT_LIB", "PySide6")
    if not getattr(sys, "frozen", False):
        return

    base_dir = getattr(sys, "_MEIPASS", os.path.dirname(os.path.abspath(__file__)))
    qt_dir = os.path.join(base_dir, "PySide6")
    for path in (qt_dir, os.path.join(qt_dir, "Qt", "bin"), base_dir):
        if os.path.isdir(path):
            os.environ["PATH"] = path + os.pathsep + os.environ.get("PATH", "")

    plugins_dir = os.path.join(qt_dir, "plugins")
    if os.path.isdir(plugins_dir):
        os.environ.setdefault("QT_PLUGIN_PATH", plugins_dir)
        os.environ.setdefault(
            "QT_QPA_PLATFORM_PLUGIN_PATH", os.path.join(plugins_dir, "platforms")
        )


_configure_qt_runtime()

current_dir = os.path.dirname(os.path.abspath(__file__))
if current_dir not in sys.path:
    sys.path.insert(0, current_dir)

from app.bootstrap import run  # noqa: E402


def main() -> None:
    try:
        sys.exit(run(sys.argv))
    except SystemExit:
        raise
    except Exception:
        # Print the traceback to stderr so it is visible when launched from a
        # console, frozen builds included.
        import traceback

        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
