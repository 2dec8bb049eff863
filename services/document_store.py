# -*- coding: utf-8 -*-
"""Contrato comum dos 'bancos' de documentos JSON (GitHub ou disco local)."""
from __future__ import annotations
import logging
import time
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Falha de leitura/gravação no banco."""


class ConflictError(StoreError):
    """Outro processo gravou antes e as novas tentativas se esgotaram."""


class DocumentStore:
    """Cada documento é uma lista JSON; ``sha`` identifica a versão lida."""

    def load(self, path: str) -> Tuple[List[dict], Optional[str]]:
        raise NotImplementedError

    def commit(self, path: str, data: List[dict], sha: Optional[str], message: str) -> Optional[str]:
        """Grava e devolve o novo sha, ou None em caso de conflito de versão."""
        raise NotImplementedError

    def update_with_retry(self, path: str, mutate: Callable[[List[dict]], List[dict]], message: str,
                          max_retries: int = 3, sleep_seconds: float = 0.8) -> List[dict]:
        """Lê, aplica ``mutate`` e grava; repete em caso de conflito (409).

        Exceções levantadas por ``mutate`` cancelam a gravação e sobem ao chamador.
        """
        for attempt in range(max_retries):
            data, sha = self.load(path)
            new_data = mutate(list(data))
            new_sha = self.commit(path, new_data, sha, message=message)
            if new_sha:
                return new_data
            logger.warning("Conflito ao gravar %s (tentativa %d/%d)", path, attempt + 1, max_retries)
            time.sleep(sleep_seconds)
        raise ConflictError(f"Não foi possível gravar {path} após {max_retries} tentativas")
