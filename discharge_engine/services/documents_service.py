# discharge_engine/services/documents_service.py
import asyncio
import re
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence, Union

from pydantic import ValidationError

from discharge_engine.commons.logger import logger
from discharge_engine.helpers.file_transport import FileWatcher, JsonWriter, mime_type_for
from discharge_engine.helpers.router import companion_instructions, document_kind
from discharge_engine.parsers.models import RawDocument, UnsupportedDocumentError


def generate_record_filename(source: str, tenant: str, extension: str = "json") -> str:
    """
    Timestamped output name, sortable by arrival:
    20251005-101530-123456_hospital-a_patient42.summary.json
    """
    ts = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
    base_name = Path(source).name
    for suffix in (".txt", ".md"):
        if base_name.lower().endswith(suffix):
            base_name = base_name[: -len(suffix)]
    safe_base = re.sub(r"[^a-zA-Z0-9_.\-]", "_", base_name)
    safe_tenant = re.sub(r"[^a-zA-Z0-9_\-]", "_", tenant)
    return f"{ts}_{safe_tenant}_{safe_base}.{extension}"


class DocumentsService:
    def __init__(self, router, paths):
        self.router = router
        self.paths = paths
        Path(paths["inbox"]).mkdir(parents=True, exist_ok=True)
        Path(paths["archive"]).mkdir(parents=True, exist_ok=True)
        Path(paths["error"]).mkdir(parents=True, exist_ok=True)
        self.writer = JsonWriter(paths["archive"])

    def _move_sources(self, src: str, dst_dir: Path):
        dst_dir.mkdir(parents=True, exist_ok=True)
        sources = [Path(src)]
        if document_kind(src) == "summary":
            sources.append(companion_instructions(src))
        for p in sources:
            if p.exists():
                shutil.move(str(p), str(dst_dir / p.name))

    def _reject(self, content: Union[str, bytes], src: str):
        err_dir = Path(self.paths["error"])
        if src and Path(src).exists():
            self._move_sources(src, err_dir)
            return
        target = err_dir / (Path(src).name if src else "document.err.txt")
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content, encoding="utf-8")

    async def _process_upload(self, content: bytes, src: str) -> Optional[str]:
        doc = RawDocument(content, mime_type_for(src), self.router.tenant_for(src))
        try:
            text = doc.text()
        except (UnsupportedDocumentError, UnicodeDecodeError) as ex:
            self._reject(content, src)
            logger.error(f"[{doc.tenant_id}] rejected {Path(src).name}: {ex}")
            return None
        return await self._process_text(text, src)

    async def _process_text(self, text: str, src: str) -> Optional[str]:
        # Raw copy first, whatever happens next
        self.router.archive_raw("recv", text, tag=document_kind(src) or "unknown")
        try:
            record = self.router.route(text, src)
            filename = generate_record_filename(src, record.get("tenant", "unknown"))
            out_json = self.writer.write(filename, record)
            logger.info(f"Document processed and archived: {out_json}")

            if src and Path(src).exists():
                self._move_sources(src, Path(self.paths["archive"]) / "documents")
            return out_json

        except ValidationError as ve:
            # Strict tenant rejected the parse: error/ and keep the loop alive
            self._reject(text, src)
            logger.error(f"Validation failed for {Path(src).name}: {ve}")
            return None
        except Exception as ex:
            self._reject(text, src)
            logger.exception(f"Error processing {src}: {ex}. Moved to {self.paths['error']}")
            return None

    async def process_backlog(self, patterns: Sequence[str]):
        inbox = Path(self.paths["inbox"])
        files = sorted({f for pat in patterns for f in inbox.rglob(pat)})
        if not files:
            return
        logger.info(f"Backlog detected: {len(files)} file(s) in {inbox}")
        for f in files:
            # An earlier summary may have taken this file along as its companion
            if not f.exists():
                continue
            try:
                content = f.read_bytes()
            except OSError as e:
                logger.warning(f"Could not read {f}: {e}; retrying shortly...")
                await asyncio.sleep(0.1)
                content = f.read_bytes()
            # One bad file must not stop the backlog
            try:
                await self._process_upload(content, str(f))
            except Exception as ex:
                logger.exception(f"Unexpected failure with {f}: {ex}")

    async def run(self, patterns: Sequence[str], stop_event: Optional[asyncio.Event] = None):
        loop = asyncio.get_running_loop()

        await self.process_backlog(patterns)

        watcher = FileWatcher(self.paths["inbox"], patterns, self._process_upload, loop)
        watcher.start()
        logger.info(f"Watching {self.paths['inbox']} for {list(patterns)}...")
        try:
            await (stop_event or asyncio.Event()).wait()
        finally:
            watcher.stop()
