EDITOR_STYLE = """
QMainWindow, QWidget {
    background-color: #17181C;
    color: #E4E2DD;
    font-family: "Inter", "Helvetica Neue", "Arial";
    font-size: 13px;
}

QPushButton {
    background-color: #24262D;
    border: 1px solid #3A3D47;
    border-radius: 4px;
    padding: 5px 14px;
    color: #E4E2DD;
}

QPushButton:hover {
    background-color: #2D3039;
    border-color: #F2A541;
}

QPushButton:disabled {
    color: #6C6F78;
    border-color: #2A2C33;
}

QWidget#actionStrip {
    background-color: #1E2026;
    border-bottom: 1px solid #30333C;
}

QPushButton#transportButton {
    min-width: 40px;
    max-width: 40px;
    font-size: 16px;
}

QPushButton#trimButton {
    background-color: #F2A541;
    border-color: #F2A541;
    color: #17181C;
    font-weight: 600;
}

QPushButton#downloadButton {
    border-color: #5FA8A0;
    color: #A9DDD6;
}

QLabel#titleLabel {
    font-size: 18px;
    font-weight: 600;
}

QLabel#subLabel {
    color: #9A9CA5;
}

QLabel#errorLabel {
    background-color: #3A1E1E;
    border-left: 3px solid #E5584F;
    color: #F6C9C4;
    padding: 4px 8px;
}

QListWidget#regionList {
    background-color: #1E2026;
    border: 1px solid #30333C;
}

QListWidget#regionList::item:selected {
    background-color: #3B3326;
    color: #F2A541;
}

QSlider::groove:horizontal {
    height: 4px;
    background: #30333C;
}

QSlider::sub-page:horizontal {
    background: #F2A541;
}

QSlider::handle:horizontal {
    background: #E4E2DD;
    width: 10px;
    margin: -4px 0;
    border-radius: 5px;
}
"""
