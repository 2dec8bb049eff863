# -*- coding: utf-8 -*-
"""Camada de acesso ao 'banco' no GitHub (arquivos JSON via GitHub REST API)."""
from __future__ import annotations
import base64
import json
import logging
from typing import List, Optional, Tuple

import requests

from services.document_store import DocumentStore, StoreError

logger = logging.getLogger(__name__)

API_URL = "https://api.github.com"


def _encode(data: List[dict]) -> str:
    raw = json.dumps(data, ensure_ascii=False, indent=2).encode("utf-8")
    return base64.b64encode(raw).decode("utf-8")


def _decode(content_b64: str) -> List[dict]:
    return json.loads(base64.b64decode(content_b64).decode("utf-8") or "[]")


class GithubJSONStore(DocumentStore):
    """Cada documento é um arquivo do repositório; o sha do blob controla a concorrência."""

    def __init__(self, owner: str, repo: str, token: str, branch: str = "main",
                 timeout: float = 15.0) -> None:
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.timeout = timeout
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _contents_url(self, path: str) -> str:
        return f"{API_URL}/repos/{self.owner}/{self.repo}/contents/{path}"

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        try:
            return getattr(requests, method)(self._contents_url(path), headers=self._headers,
                                             timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise StoreError(f"Sem conexão com o GitHub ({path}): {e}") from e

    def _put(self, path: str, data: List[dict], sha: Optional[str], message: str) -> requests.Response:
        payload = {"message": message, "content": _encode(data), "branch": self.branch}
        if sha:
            payload["sha"] = sha
        return self._request("put", path, json=payload)

    def load(self, path: str) -> Tuple[List[dict], Optional[str]]:
        """Retorna (data, sha). Arquivo inexistente é criado com []."""
        r = self._request("get", path, params={"ref": self.branch})
        if r.status_code == 404:
            logger.info("Arquivo %s não existe no GitHub; criando []", path)
            cr = self._put(path, [], None, message=f"Inicializa {path}")
            if cr.status_code not in (200, 201):
                raise StoreError(f"Erro ao criar arquivo no GitHub: {cr.status_code} {cr.text}")
            return [], cr.json().get("content", {}).get("sha")
        if r.status_code != 200:
            raise StoreError(f"Erro ao carregar {path}: {r.status_code} {r.text}")

        payload = r.json()
        try:
            data = _decode(payload.get("content", ""))
        except (ValueError, UnicodeDecodeError) as e:
            raise StoreError(f"Conteúdo inválido em {path}: {e}") from e
        return data, payload.get("sha")

    def commit(self, path: str, data: List[dict], sha: Optional[str], message: str) -> Optional[str]:
        r = self._put(path, data, sha, message)
        if r.status_code in (200, 201):
            return r.json().get("content", {}).get("sha")
        # 409: outro commit chegou antes
        if r.status_code == 409:
            logger.debug("Conflito de sha em %s", path)
            return None
        raise StoreError(f"Erro ao gravar no GitHub: {r.status_code} {r.text}")
