import asyncio
import mimetypes
from pathlib import Path
from typing import Iterable

from sync_editor.domain.upload_policy import UPLOAD_RULES, MediaKind, validate_upload
from sync_editor.services.session_lifecycle import EditorSession, SessionMedia

KNOWN_MIME_TYPES = {mime for rule in UPLOAD_RULES.values() for mime in rule.mime_types}


class LoadMedia:
    """Use case for opening a file (plus optional extra audio tracks) in the editor."""

    def __init__(self, session: EditorSession):
        self.session = session

    async def execute(
        self,
        path: Path,
        kind: MediaKind = MediaKind.AUDIO,
        extra_tracks: Iterable[Path] = (),
    ) -> SessionMedia:
        path = Path(path)
        if not path.is_file():
            raise ValueError(f"{path} is not a file.")
        mime_type, _ = mimetypes.guess_type(path.name)
        mime_type = mime_type if mime_type in KNOWN_MIME_TYPES else None
        # Reject oversized files before reading them into memory.
        validate_upload(kind, path.name, path.stat().st_size, mime_type)
        data = await asyncio.to_thread(path.read_bytes)
        media = SessionMedia(
            name=path.name,
            data=data,
            kind=kind,
            mime_type=mime_type,
            path=path,
            extra_tracks=[(p.stem, Path(p)) for p in extra_tracks],
        )
        await self.session.load(media)
        return media
