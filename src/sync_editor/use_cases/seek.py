from sync_editor.services.session_lifecycle import EditorSession


class Seek:
    def __init__(self, session: EditorSession):
        self.session = session

    def execute(self, seconds: float) -> float:
        return self.session.seek(seconds)
