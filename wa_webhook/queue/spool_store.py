"""Spool-directory based list store."""
import os
import re
import threading
import time
from pathlib import Path
from typing import Optional, List

from wa_webhook.errors import QueueStoreError
from wa_webhook.logging_conf import logger
from wa_webhook.queue.store import ListStore

READY_SUFFIX = ".evt"
CLAIM_SUFFIX = ".claim"
TEMP_SUFFIX = ".tmp"


class SpoolListStore(ListStore):
    """Each list is a directory; each entry is one file.

    File names are zero-padded sequence numbers, so sorting by name gives
    push order. Entries are published with an atomic rename from a temp
    file and claimed with an atomic rename to ``.claim``; only one caller
    can win a claim, so several workers may pop the same directory.
    """

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self._last_seq = 0
        self._known_dirs = set()

    def push(self, key: str, value: str) -> None:
        directory = self._list_dir(key)
        name = self._next_name()
        temp_path = directory / f".{name}{TEMP_SUFFIX}"
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, directory / f"{name}{READY_SUFFIX}")
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise QueueStoreError(f"Failed to push to spool list {key}: {e}") from e

    def pop(self, key: str) -> Optional[str]:
        directory = self._list_dir(key)
        try:
            candidates = self._list_files(directory, READY_SUFFIX)
        except OSError as e:
            raise QueueStoreError(f"Failed to scan spool list {key}: {e}") from e

        for path in candidates:
            claim_path = path.with_suffix(CLAIM_SUFFIX)
            try:
                os.rename(path, claim_path)
            except FileNotFoundError:
                # Claimed by another consumer between scan and rename
                continue
            except OSError as e:
                raise QueueStoreError(f"Failed to claim spool entry {path.name}: {e}") from e

            try:
                # Invalid bytes survive as U+FFFD so the entry decodes as malformed downstream
                value = claim_path.read_bytes().decode("utf-8", errors="replace")
            except OSError as e:
                self._release(claim_path, path)
                raise QueueStoreError(f"Failed to read spool entry {path.name}: {e}") from e

            claim_path.unlink(missing_ok=True)
            return value

        return None

    def length(self, key: str) -> int:
        try:
            return len(self._list_files(self._list_dir(key), READY_SUFFIX))
        except OSError as e:
            raise QueueStoreError(f"Failed to count spool list {key}: {e}") from e

    def recover_claims(self) -> int:
        """Return entries claimed by a consumer that died before finishing.

        Meant for process start, before any worker of this spool runs.
        """
        recovered = 0
        for directory in [p for p in self.base_dir.iterdir() if p.is_dir()]:
            for claim_path in self._list_files(directory, CLAIM_SUFFIX):
                try:
                    os.rename(claim_path, claim_path.with_suffix(READY_SUFFIX))
                    recovered += 1
                except FileNotFoundError:
                    pass
        if recovered:
            logger.warning(f"Recovered {recovered} unfinished spool claims")
        return recovered

    def _list_dir(self, key: str) -> Path:
        directory = self.base_dir / self._safe_key(key)
        if directory not in self._known_dirs:
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise QueueStoreError(f"Cannot create spool directory {directory}: {e}") from e
            self._known_dirs.add(directory)
        return directory

    def _next_name(self) -> str:
        """Sequence number that sorts after everything this process pushed before."""
        with self._lock:
            seq = max(time.time_ns(), self._last_seq + 1)
            self._last_seq = seq
        return f"{seq:020d}-{os.getpid()}"

    def _safe_key(self, value: str) -> str:
        """Make a safe directory name from a list key."""
        return re.sub(r"[^A-Za-z0-9._-]", "_", value)[:200]

    def _list_files(self, directory: Path, suffix: str) -> List[Path]:
        try:
            files = [p for p in directory.iterdir() if p.is_file() and p.suffix == suffix]
        except FileNotFoundError:
            return []
        files.sort(key=lambda p: p.name)
        return files

    def _release(self, claim_path: Path, ready_path: Path) -> None:
        try:
            os.rename(claim_path, ready_path)
        except OSError as e:
            logger.error(f"Failed to release spool claim {claim_path.name}: {e}")
