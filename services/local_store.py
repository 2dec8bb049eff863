# -*- coding: utf-8 -*-
"""'Banco' em arquivos JSON no disco, com o mesmo contrato do GitHub."""
from __future__ import annotations
import hashlib
import json
import logging
import os
import threading
from typing import List, Optional, Tuple

from services.document_store import DocumentStore, StoreError

logger = logging.getLogger(__name__)


def _sha(raw: bytes) -> str:
    return hashlib.sha1(raw).hexdigest()


class LocalJSONStore(DocumentStore):
    def __init__(self, base_dir: str) -> None:
        self.base_dir = base_dir
        self._lock = threading.Lock()
        os.makedirs(base_dir, exist_ok=True)

    def _file(self, path: str) -> str:
        return os.path.join(self.base_dir, path)

    def _read_raw(self, path: str) -> bytes:
        fname = self._file(path)
        if not os.path.exists(fname):
            logger.info("Arquivo %s não existe; criando []", fname)
            os.makedirs(os.path.dirname(fname) or ".", exist_ok=True)
            with open(fname, "wb") as fh:
                fh.write(b"[]")
        with open(fname, "rb") as fh:
            return fh.read()

    def load(self, path: str) -> Tuple[List[dict], Optional[str]]:
        raw = self._read_raw(path)
        try:
            data = json.loads(raw.decode("utf-8") or "[]")
        except (ValueError, UnicodeDecodeError) as e:
            raise StoreError(f"Erro ao carregar {path}: {e}") from e
        return data, _sha(raw)

    def commit(self, path: str, data: List[dict], sha: Optional[str], message: str) -> Optional[str]:
        raw = json.dumps(data, ensure_ascii=False, indent=2).encode("utf-8")
        fname = self._file(path)
        with self._lock:
            if sha is not None and os.path.exists(fname):
                with open(fname, "rb") as fh:
                    if _sha(fh.read()) != sha:
                        return None
            tmp = fname + ".tmp"
            with open(tmp, "wb") as fh:
                fh.write(raw)
            os.replace(tmp, fname)
        logger.debug("%s: %s", fname, message)
        return _sha(raw)
