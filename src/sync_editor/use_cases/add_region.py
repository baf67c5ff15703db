from sync_editor.domain.region import Region
from sync_editor.services.session_lifecycle import EditorSession


class AddRegion:
    """Use case for marking a new region at the current playback time."""

    def __init__(self, session: EditorSession):
        self.session = session

    def execute(self, length: float | None = None) -> Region:
        """
        Create a region starting at the playhead.

        Args:
            length (float | None): Region length in seconds; defaults to the
                configured default region length.

        Returns:
            Region: The stored region, clamped to the session duration.

        Raises:
            EngineNotReady: The region editor is not attached yet.
        """
        if length is None:
            length = self.session.settings.default_region_length
        if length < 0:
            raise ValueError("Region length cannot be negative.")
        return self.session.regions.add_region(self.session.state.time, length)
