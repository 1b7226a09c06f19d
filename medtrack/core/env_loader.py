"""Lecture du fichier .env optionnel placé à la racine du dépôt."""
from __future__ import annotations

import os
import threading
from pathlib import Path

ENV_PATH = Path(__file__).resolve().parents[2] / ".env"

_loaded = False
_lock = threading.Lock()


def parse_env_line(line: str) -> tuple[str, str] | None:
    """Découpe une ligne ``CLE=valeur`` ; commentaires et lignes invalides donnent ``None``."""
    stripped = line.strip()
    if not stripped or stripped.startswith("#") or "=" not in stripped:
        return None
    key, _, value = stripped.partition("=")
    key = key.strip()
    if key.startswith("export "):
        key = key.removeprefix("export ").strip()
    if not key:
        return None
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        value = value[1:-1]
    return key, value


def load_env(path: Path | None = None) -> list[str]:
    """Exporte les variables du fichier sans écraser l'environnement existant.

    Le fichier n'est lu qu'une fois par processus ; renvoie les clés ajoutées.
    """
    global _loaded
    with _lock:
        if _loaded:
            return []
        _loaded = True
        env_path = path or ENV_PATH
        if not env_path.is_file():
            return []
        added: list[str] = []
        for line in env_path.read_text(encoding="utf-8").splitlines():
            parsed = parse_env_line(line)
            if parsed is None:
                continue
            key, value = parsed
            if key not in os.environ:
                os.environ[key] = value
                added.append(key)
        return added
