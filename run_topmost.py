# -*- coding: utf-8 -*-
"""Quiosque: janela nativa sempre à frente com o app de ponto."""
import logging
import os
import subprocess
import sys
import time

import requests
import webview

logger = logging.getLogger("ponto.kiosk")

PORT = os.getenv("KIOSK_PORT", "8501")
FULLSCREEN = os.getenv("KIOSK_FULLSCREEN", "false").lower() in ("1", "true", "yes", "sim")
APP_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "app.py")
URL = f"http://localhost:{PORT}"


def streamlit_cmd():
    return [sys.executable, "-m", "streamlit", "run", APP_FILE,
            "--server.port", PORT, "--server.headless", "true"]


def wait_for_server(url: str, timeout: float = 30.0) -> bool:
    """Espera o endpoint de saúde do Streamlit responder."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            if requests.get(f"{url}/_stcore/health", timeout=2).ok:
                return True
        except requests.RequestException:
            pass
        time.sleep(0.5)
    return False


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    proc = subprocess.Popen(streamlit_cmd())
    try:
        if not wait_for_server(URL):
            logger.error("Streamlit não respondeu em %s", URL)
            return 1
        webview.create_window("Ponto Eletrônico", URL, width=480, height=720,
                              topmost=True, fullscreen=FULLSCREEN, resizable=True)
        webview.start()
        return 0
    finally:
        # fechar a janela encerra o servidor
        proc.terminate()


if __name__ == "__main__":
    sys.exit(main())
