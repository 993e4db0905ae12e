import asyncio
import json
import mimetypes
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

from watchdog.events import PatternMatchingEventHandler
from watchdog.observers import Observer

# Suffixes the platform guesses inconsistently
MIME_BY_SUFFIX = {
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


def mime_type_for(path: str) -> str:
    suffix = Path(path).suffix.lower()
    return MIME_BY_SUFFIX.get(suffix) or mimetypes.guess_type(path)[0] or "application/octet-stream"


class JsonWriter:
    def __init__(self, outdir: str):
        self.outdir = Path(outdir)
        self.outdir.mkdir(parents=True, exist_ok=True)

    def write(self, filename: str, data: Dict[str, Any]) -> str:
        p = self.outdir / filename
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        return str(p)


class FileWatcher:
    """Hands every new/changed inbox file matching ``patterns`` to a coroutine.

    Tenants are subfolders of the inbox, so the folder is watched recursively.
    The coroutine gets the raw bytes and the path, and runs on ``loop``
    (watchdog calls back from its own thread). A file whose size and mtime
    were already submitted is not submitted again.
    """

    def __init__(
        self,
        inbox: str,
        patterns: Sequence[str],
        on_message_async,
        loop: asyncio.AbstractEventLoop,
    ):
        self.inbox = Path(inbox)
        self.inbox.mkdir(parents=True, exist_ok=True)
        self.loop = loop
        self.on_message_async = on_message_async
        self._submitted: Dict[str, Tuple[int, int]] = {}
        self._lock = threading.Lock()

        self.handler = PatternMatchingEventHandler(patterns=list(patterns), ignore_directories=True)
        self.handler.on_created = lambda e: self.submit(Path(e.src_path))
        self.handler.on_modified = lambda e: self.submit(Path(e.src_path))
        self.handler.on_moved = lambda e: self.submit(Path(e.dest_path))

        self.observer = Observer()

    def _first_submission(self, path: Path) -> bool:
        try:
            st = path.stat()
        except FileNotFoundError:
            return False
        signature = (st.st_mtime_ns, st.st_size)
        with self._lock:
            if self._submitted.get(str(path)) == signature:
                return False
            self._submitted[str(path)] = signature
        return True

    def submit(self, path: Path):
        # Already processed and moved away, or a repeat event for the same write
        if not path.exists() or not self._first_submission(path):
            return None
        # Give the writer a moment to finish
        content: Optional[bytes] = None
        for _ in range(10):
            try:
                content = path.read_bytes()
                break
            except FileNotFoundError:
                return None
            except OSError:
                time.sleep(0.05)
        if content is None:
            # Last attempt; a failure here surfaces in the logs
            content = path.read_bytes()

        return asyncio.run_coroutine_threadsafe(
            self.on_message_async(content, str(path)), self.loop
        )

    def start(self):
        self.observer.schedule(self.handler, str(self.inbox), recursive=True)
        self.observer.start()

    def stop(self):
        self.observer.stop()
        self.observer.join()
