"""
styles.py

Application stylesheets - Dark (gray-900, the default) and Light themes.
"""

DARK_STYLE = """
/* === Base Colors === */
QMainWindow {
    background-color: #111827;
}

QWidget {
    background-color: #1f2937;
    color: #e5e7eb;
    font-family: "Segoe UI", "SF Pro Display", sans-serif;
    font-size: 13px;
}

/* === Menu Bar === */
QMenuBar {
    background-color: #111827;
    color: #e5e7eb;
    border-bottom: 1px solid #374151;
    padding: 2px;
}

QMenuBar::item:selected, QMenu::item:selected {
    background-color: #2563eb;
}

QMenu {
    background-color: #1f2937;
    border: 1px solid #374151;
    padding: 4px;
}

QMenu::item {
    padding: 6px 20px;
}

/* === Toolbar === */
QToolBar {
    background-color: #111827;
    border: none;
    spacing: 6px;
    padding: 4px;
}

QToolButton {
    background-color: #374151;
    border-radius: 12px;
    padding: 4px 10px;
}

QToolButton:hover {
    background-color: #4b5563;
}

QToolButton:checked {
    background-color: #2563eb;
    color: #ffffff;
}

QToolButton:disabled {
    color: #6b7280;
}

/* === Inputs === */
QLineEdit {
    background-color: #374151;
    border: 1px solid #4b5563;
    border-radius: 4px;
    padding: 3px 6px;
}

QLineEdit:focus {
    border: 1px solid #3b82f6;
}

QSlider::groove:horizontal {
    height: 6px;
    background: #374151;
    border-radius: 3px;
}

QSlider::handle:horizontal {
    background: #3b82f6;
    width: 14px;
    margin: -5px 0;
    border-radius: 7px;
}

/* === Report Panel === */
QGroupBox {
    border: 1px solid #374151;
    border-radius: 6px;
    margin-top: 14px;
    padding-top: 6px;
    font-weight: bold;
}

QGroupBox::title {
    subcontrol-origin: margin;
    left: 8px;
    color: #93c5fd;
}

QDockWidget::title {
    background-color: #111827;
    padding: 6px;
}

/* === Canvas === */
QGraphicsView {
    background-color: #000000;
    border: none;
}

QStatusBar {
    background-color: #111827;
    color: #9ca3af;
}
"""

LIGHT_STYLE = """
QMainWindow {
    background-color: #f3f4f6;
}

QWidget {
    background-color: #ffffff;
    color: #1f2937;
    font-family: "Segoe UI", "SF Pro Display", sans-serif;
    font-size: 13px;
}

QMenuBar::item:selected, QMenu::item:selected {
    background-color: #dbeafe;
}

QToolBar {
    background-color: #f3f4f6;
    border: none;
    spacing: 6px;
    padding: 4px;
}

QToolButton {
    background-color: #e5e7eb;
    border-radius: 12px;
    padding: 4px 10px;
}

QToolButton:checked {
    background-color: #2563eb;
    color: #ffffff;
}

QLineEdit {
    border: 1px solid #d1d5db;
    border-radius: 4px;
    padding: 3px 6px;
}

QGroupBox {
    border: 1px solid #d1d5db;
    border-radius: 6px;
    margin-top: 14px;
    padding-top: 6px;
    font-weight: bold;
}

QGroupBox::title {
    subcontrol-origin: margin;
    left: 8px;
    color: #1d4ed8;
}

QGraphicsView {
    background-color: #111827;
    border: none;
}
"""

# Style registry for easy access
STYLES = {
    "Dark": DARK_STYLE,
    "Light": LIGHT_STYLE,
}

DEFAULT_STYLE = "Dark"
