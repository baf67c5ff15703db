from sync_editor.domain.trim_plan import TrimResult
from sync_editor.services.session_lifecycle import EditorSession


class TrimRegions:
    """Use case for keeping only the marked regions of the loaded audio."""

    def __init__(self, session: EditorSession):
        self.session = session

    async def execute(self) -> TrimResult | None:
        """
        Run the trim.

        Returns:
            TrimResult | None: The new artifact, or None when the session was
                reset while the trim was running.

        Raises:
            NoRegions: Nothing is marked.
            Busy: Another trim is still running.
            TrimExecutionError: The executor failed.
        """
        return await self.session.trim()
