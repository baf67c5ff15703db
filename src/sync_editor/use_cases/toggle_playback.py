from sync_editor.services.session_lifecycle import EditorSession


class TogglePlayback:
    """Use case for the play/pause button; the follower is mirrored by the reconciler."""

    def __init__(self, session: EditorSession):
        self.session = session

    def execute(self) -> bool:
        if self.session.mixing is None:
            return False
        if self.session.mixing.is_playing():
            self.session.pause()
        else:
            self.session.play()
        return self.session.state.is_playing
