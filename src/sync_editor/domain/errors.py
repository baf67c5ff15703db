class SyncEditorError(Exception):
    """Base class for every error raised by the editor core."""


class ValidationError(SyncEditorError):
    """Rejected upload: unsupported media type or oversized file."""


class EngineInitError(SyncEditorError):
    """The mixing, visualization or trim engine failed to load or attach."""


class NotDraggable(SyncEditorError):
    """A position change was requested for a track that cannot be moved."""

    def __init__(self, track_id: int):
        super().__init__(f"Track {track_id} is not draggable")
        self.track_id = track_id


class EngineNotReady(SyncEditorError):
    """The region engine is not attached yet."""


class RuntimeSyncError(SyncEditorError):
    """A reconciliation tick failed, e.g. a handle vanished mid-tick."""


class TrimExecutionError(SyncEditorError):
    """Trimming failed; the processing flag has already been reset."""


class NoRegions(TrimExecutionError):
    def __init__(self):
        super().__init__("Please select an audio file and create regions to trim")


class Busy(SyncEditorError):
    """A trim request is already in flight."""

    def __init__(self):
        super().__init__("A trim is already in progress")
