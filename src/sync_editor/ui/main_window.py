import asyncio
import logging
import os
import sys
from pathlib import Path

from PySide6.QtCore import Qt, QTimer, Slot
from PySide6.QtMultimediaWidgets import QVideoWidget
from PySide6.QtWidgets import (
    QApplication,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QPushButton,
    QScrollArea,
    QSlider,
    QVBoxLayout,
    QWidget,
)

from sync_editor.config import EditorSettings
from sync_editor.domain.errors import Busy, EngineNotReady, SyncEditorError
from sync_editor.domain.upload_policy import MediaKind, validate_upload
from sync_editor.services.audio_engine import SoundDeviceMixingEngine
from sync_editor.services.session_lifecycle import EditorSession, LifecycleState, SessionMedia
from sync_editor.services.trim_executor import FfmpegTrimExecutor
from sync_editor.services.wav_io import read_audio_bytes
from sync_editor.ui.qt_scheduler import AsyncioPump, QtTickScheduler
from sync_editor.ui.region_waveform_widget import RegionWaveformWidget
from sync_editor.ui.styles import EDITOR_STYLE
from sync_editor.ui.video_follower import QtFollowerMedia
from sync_editor.use_cases.add_region import AddRegion
from sync_editor.use_cases.clear_regions import ClearRegions
from sync_editor.use_cases.delete_region import DeleteRegion
from sync_editor.use_cases.load_media import LoadMedia
from sync_editor.use_cases.seek import Seek
from sync_editor.use_cases.set_track_volume import SetTrackVolume
from sync_editor.use_cases.toggle_playback import TogglePlayback
from sync_editor.use_cases.trim_regions import TrimRegions

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(self, settings: EditorSettings | None = None):
        super().__init__()
        self.settings = settings or EditorSettings.from_env()
        self.pump = AsyncioPump(self)
        self.video_path: Path | None = None
        self.audio_path: Path | None = None
        self._region_snapshot: list[tuple] = []

        self.session = EditorSession(
            mixing_factory=self._create_mixing_engine,
            region_engine_factory=self._create_region_engine,
            follower_factory=self._create_follower,
            trim_executor=FfmpegTrimExecutor(self.settings.ffmpeg_path, self.settings.output_format),
            scheduler=QtTickScheduler(self),
            settings=self.settings,
        )

        self.setWindowTitle("Sync Editor")
        self.setMinimumSize(960, 640)
        self.setStyleSheet(EDITOR_STYLE)

        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        root_layout = QVBoxLayout()
        root_layout.setContentsMargins(10, 10, 10, 10)
        root_layout.setSpacing(10)
        central_widget.setLayout(root_layout)

        # ===== Action Strip =====
        action_strip = QWidget()
        action_strip.setObjectName("actionStrip")
        strip_layout = QHBoxLayout()
        strip_layout.setContentsMargins(12, 10, 12, 10)
        strip_layout.setSpacing(6)
        action_strip.setLayout(strip_layout)
        root_layout.addWidget(action_strip)

        self.open_audio_button = QPushButton("Open Audio")
        self.open_audio_button.clicked.connect(self.handle_open_audio)
        self.open_video_button = QPushButton("Open Video")
        self.open_video_button.clicked.connect(self.handle_open_video)
        self.play_button = QPushButton("▶")
        self.play_button.setObjectName("transportButton")
        self.play_button.clicked.connect(self.handle_toggle_playback)
        self.add_region_button = QPushButton("Add Region")
        self.add_region_button.clicked.connect(self.handle_add_region)
        self.reset_button = QPushButton("Reset")
        self.reset_button.clicked.connect(self.handle_reset)
        for button in (
            self.open_audio_button,
            self.open_video_button,
            self.play_button,
            self.add_region_button,
            self.reset_button,
        ):
            strip_layout.addWidget(button)
        strip_layout.addStretch(1)

        strip_layout.addWidget(QLabel("Zoom"))
        self.zoom_slider = QSlider(Qt.Horizontal)
        self.zoom_slider.setRange(int(self.settings.zoom_min), int(self.settings.zoom_max))
        self.zoom_slider.setValue(int(self.settings.zoom_default))
        self.zoom_slider.setFixedWidth(140)
        self.zoom_slider.valueChanged.connect(self.handle_zoom)
        strip_layout.addWidget(self.zoom_slider)

        strip_layout.addWidget(QLabel("Volume"))
        self.volume_slider = QSlider(Qt.Horizontal)
        self.volume_slider.setRange(0, 100)
        self.volume_slider.setValue(100)
        self.volume_slider.setFixedWidth(120)
        self.volume_slider.valueChanged.connect(self.handle_volume)
        strip_layout.addWidget(self.volume_slider)

        # ===== Status =====
        self.title_label = QLabel("No media loaded")
        self.title_label.setObjectName("titleLabel")
        root_layout.addWidget(self.title_label)
        self.sub_label = QLabel("Open an audio file to start marking regions.")
        self.sub_label.setObjectName("subLabel")
        root_layout.addWidget(self.sub_label)
        self.error_label = QLabel()
        self.error_label.setObjectName("errorLabel")
        self.error_label.setWordWrap(True)
        self.error_label.hide()
        root_layout.addWidget(self.error_label)

        # ===== Media =====
        self.video_widget = QVideoWidget()
        self.video_widget.setMinimumHeight(200)
        root_layout.addWidget(self.video_widget, 2)

        self.waveform = RegionWaveformWidget()
        waveform_scroll = QScrollArea()
        waveform_scroll.setWidgetResizable(True)
        waveform_scroll.setWidget(self.waveform)
        waveform_scroll.setMinimumHeight(120)
        root_layout.addWidget(waveform_scroll, 1)

        # ===== Regions =====
        self.region_list = QListWidget()
        self.region_list.setObjectName("regionList")
        self.region_list.itemClicked.connect(self.handle_region_item_clicked)
        root_layout.addWidget(self.region_list, 1)

        region_actions = QHBoxLayout()
        self.remove_region_button = QPushButton("Remove")
        self.remove_region_button.clicked.connect(self.handle_remove_region)
        self.clear_regions_button = QPushButton("Clear All")
        self.clear_regions_button.clicked.connect(self.handle_clear_regions)
        self.trim_button = QPushButton("Trim Audio")
        self.trim_button.setObjectName("trimButton")
        self.trim_button.clicked.connect(self.handle_trim)
        self.init_processor_button = QPushButton("Initialize Processor")
        self.init_processor_button.clicked.connect(self.handle_init_processor)
        self.download_button = QPushButton("Download Trimmed Audio")
        self.download_button.setObjectName("downloadButton")
        self.download_button.clicked.connect(self.handle_download)
        self.discard_button = QPushButton("Discard")
        self.discard_button.clicked.connect(self.handle_discard_trim)
        for button in (
            self.remove_region_button,
            self.clear_regions_button,
            self.trim_button,
            self.init_processor_button,
            self.download_button,
            self.discard_button,
        ):
            region_actions.addWidget(button)
        root_layout.addLayout(region_actions)

        self.refresh_timer = QTimer(self)
        self.refresh_timer.setInterval(100)
        self.refresh_timer.timeout.connect(self.refresh_view)
        self.refresh_timer.start()
        self.refresh_view()

    # ----- engine factories -----

    async def _create_mixing_engine(self) -> SoundDeviceMixingEngine:
        return SoundDeviceMixingEngine()

    async def _create_region_engine(self, media: SessionMedia) -> RegionWaveformWidget:
        data, duration = None, 0.0
        if media.kind is MediaKind.AUDIO:
            samples, sample_rate = await asyncio.to_thread(read_audio_bytes, media.data, media.suffix)
            data, duration = samples, len(samples) / max(sample_rate, 1)
        self.waveform.attach(data, duration)
        return self.waveform

    async def _create_follower(self, media: SessionMedia) -> QtFollowerMedia:
        source = self.video_path or media.path
        return QtFollowerMedia(source, self.video_widget)

    # ----- user actions -----

    def _begin_action(self) -> None:
        self.error_label.hide()

    def _show_error(self, exc: BaseException) -> None:
        message = str(exc) if isinstance(exc, (SyncEditorError, ValueError)) else f"Unexpected error: {exc}"
        self.error_label.setText(message)
        self.error_label.show()

    @Slot()
    def handle_open_audio(self):
        self._begin_action()
        path, _ = QFileDialog.getOpenFileName(
            self,
            "Open Audio",
            "",
            "Audio Files (*.mp3 *.wav *.ogg *.m4a *.aac *.webm);;All Files (*.*)",
        )
        if not path:
            return
        self.audio_path = Path(path)
        self._load_current()

    @Slot()
    def handle_open_video(self):
        self._begin_action()
        path, _ = QFileDialog.getOpenFileName(
            self,
            "Open Video",
            "",
            "Video Files (*.mp4 *.mov *.avi *.mkv);;All Files (*.*)",
        )
        if not path:
            return
        try:
            validate_upload(MediaKind.VIDEO, Path(path).name, os.path.getsize(path))
        except SyncEditorError as exc:
            self._show_error(exc)
            return
        self.video_path = Path(path)
        if self.audio_path is not None:
            self._load_current()

    def _load_current(self) -> None:
        if self.audio_path is None:
            return
        self.title_label.setText(self.audio_path.name)
        self.sub_label.setText("Loading…")
        self.pump.submit(LoadMedia(self.session).execute(self.audio_path), on_error=self._on_load_failed)

    def _on_load_failed(self, exc: BaseException) -> None:
        self.sub_label.setText("Load failed.")
        self._show_error(exc)

    @Slot()
    def handle_toggle_playback(self):
        self._begin_action()
        TogglePlayback(self.session).execute()

    @Slot()
    def handle_add_region(self):
        self._begin_action()
        try:
            AddRegion(self.session).execute()
        except EngineNotReady as exc:
            self._show_error(exc)

    @Slot()
    def handle_remove_region(self):
        self._begin_action()
        item = self.region_list.currentItem()
        if item is None:
            return
        try:
            DeleteRegion(self.session.regions).execute(item.data(Qt.UserRole))
        except ValueError as exc:
            self._show_error(exc)

    @Slot()
    def handle_clear_regions(self):
        self._begin_action()
        ClearRegions(self.session.regions).execute()

    @Slot(QListWidgetItem)
    def handle_region_item_clicked(self, item: QListWidgetItem):
        self._begin_action()
        region = self.session.regions.select(item.data(Qt.UserRole))
        Seek(self.session).execute(region.start)

    @Slot(int)
    def handle_zoom(self, value: int):
        self.pump.submit(self.session.set_zoom(value), on_error=self._show_error)

    @Slot(int)
    def handle_volume(self, value: int):
        if self.session.registry is None:
            return
        SetTrackVolume(self.session.registry).execute(0, value / 100)

    @Slot()
    def handle_init_processor(self):
        self._begin_action()
        self.pump.submit(self.session.trim_executor.ensure_ready(), on_error=self._show_error)

    @Slot()
    def handle_trim(self):
        self._begin_action()
        self.pump.submit(TrimRegions(self.session).execute(), on_error=self._on_trim_failed)

    def _on_trim_failed(self, exc: BaseException) -> None:
        if isinstance(exc, Busy):
            self.sub_label.setText(str(exc))
            return
        self._show_error(exc)

    @Slot()
    def handle_download(self):
        self._begin_action()
        result = self.session.trim_result
        if result is None:
            return
        path, _ = QFileDialog.getSaveFileName(self, "Save Trimmed Audio", result.filename, "WAV Files (*.wav)")
        if not path:
            return
        try:
            Path(path).write_bytes(result.data)
            self.sub_label.setText(f"Saved: {os.path.basename(path)}")
        except OSError as exc:
            self._show_error(exc)

    @Slot()
    def handle_discard_trim(self):
        self._begin_action()
        self.session.discard_trim_result()

    @Slot()
    def handle_reset(self):
        self._begin_action()
        self.audio_path = None
        self.video_path = None
        self.pump.submit(self.session.reset())
        self.title_label.setText("No media loaded")
        self.sub_label.setText("Open an audio file to start marking regions.")

    # ----- view refresh -----

    @Slot()
    def refresh_view(self):
        session = self.session
        state = session.state
        ready = session.lifecycle is LifecycleState.READY

        self.play_button.setText("❚❚" if state.is_playing else "▶")
        for button in (self.play_button, self.add_region_button, self.clear_regions_button):
            button.setEnabled(ready)
        self.trim_button.setEnabled(ready and not session.is_processing and session.regions.region_count() > 0)
        self.trim_button.setText("Processing..." if session.is_processing else "Trim Audio")
        self.download_button.setEnabled(session.trim_result is not None)
        self.discard_button.setEnabled(session.trim_result is not None)

        if ready:
            duration = state.duration or 0.0
            self.sub_label.setText(f"{state.time:.2f}s / {duration:.2f}s")
            if duration and self.waveform.duration == 0:
                self.waveform.set_duration(duration)
            if session.region_engine is not None:
                session.region_engine.set_time(state.time)

        snapshot = [(r.id, r.start, r.end, r.content) for r in session.regions.get_regions()]
        if snapshot != self._region_snapshot:
            self._region_snapshot = snapshot
            self.region_list.clear()
            for region_id, start, end, content in snapshot:
                item = QListWidgetItem(f"{content}: {start:.2f}s - {end:.2f}s")
                item.setData(Qt.UserRole, region_id)
                self.region_list.addItem(item)

        message = session.take_error()
        if message:
            self.error_label.setText(message)
            self.error_label.show()

    def closeEvent(self, event):  # noqa: N802 (Qt API)
        self.refresh_timer.stop()
        self.pump.loop.run_until_complete(self.session.reset())
        self.pump.close()
        super().closeEvent(event)


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = QApplication(sys.argv)
    window = MainWindow()
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
