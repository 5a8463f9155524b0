"""
Module de configuration du logging pour epubtrans.

Fonctionnalités :
- Regroupement des logs par session d'exécution dans logs/run_YYYYMMDD_HHMMSS/
- Création différée des fichiers de log (évite les fichiers vides)
- Sortie console compatible avec les barres de progression tqdm
- Fichiers dédiés aux requêtes LLM (llm_<contexte>_<n>.log)
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from .config import Logger_Level

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class LogSession:
    """
    Répertoire unique partagé par tous les logs d'une exécution.

    Le répertoire n'est créé qu'au premier accès : logs/run_YYYYMMDD_HHMMSS/
    """

    _session_dir: Optional[Path] = None

    @classmethod
    def get_session_dir(cls) -> Path:
        if cls._session_dir is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            cls._session_dir = Path(Logger_Level.log_dir) / f"run_{timestamp}"
        cls._session_dir.mkdir(parents=True, exist_ok=True)
        return cls._session_dir

    @classmethod
    def reset(cls):
        """Oublie la session en cours (utile pour les tests)."""
        cls._session_dir = None


class TqdmLoggingHandler(logging.Handler):
    """Écrit via tqdm.write() pour ne pas casser les barres de progression."""

    def emit(self, record):
        try:
            tqdm.write(self.format(record), file=sys.stderr)
        except Exception:
            self.handleError(record)


class LazyFileHandler(logging.Handler):
    """
    Handler qui crée le fichier de log seulement au premier message.

    Le chemin est résolu à ce moment-là, ce qui permet à LogSession.reset()
    de rediriger les loggers déjà configurés vers une nouvelle session.
    """

    def __init__(self, log_filename: str, level: int = logging.NOTSET):
        super().__init__(level)
        self.log_filename = log_filename
        self._handler: Optional[logging.FileHandler] = None
        self._path: Optional[Path] = None

    @property
    def path(self) -> Path:
        return LogSession.get_session_dir() / self.log_filename

    def emit(self, record):
        try:
            path = self.path
            if self._handler is None or self._path != path:
                if self._handler is not None:
                    self._handler.close()
                self._handler = logging.FileHandler(path, mode="a", encoding="utf-8")
                self._handler.setFormatter(self.formatter)
                self._path = path
            self._handler.emit(record)
        except Exception:
            self.handleError(record)

    def close(self):
        if self._handler:
            self._handler.close()
            self._handler = None
        super().close()


def setup_logger(
    name: str,
    log_filename: str = "translation.log",
    level: Optional[int] = None,
    console_level: Optional[int] = None,
    file_level: Optional[int] = None,
) -> logging.Logger:
    """
    Configure un logger avec sortie console (tqdm) et fichier de session.

    Args:
        name: Nom du logger (généralement __name__ du module)
        log_filename: Nom du fichier dans le répertoire de session
        level: Niveau global (défaut : Logger_Level.level)
        console_level: Niveau console (défaut : Logger_Level.console_level)
        file_level: Niveau fichier (défaut : Logger_Level.file_level)

    Returns:
        Logger configuré. Un logger déjà équipé de handlers est retourné tel quel.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level if level is not None else Logger_Level.level)

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(
        console_level if console_level is not None else Logger_Level.console_level
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    file_handler = LazyFileHandler(log_filename)
    file_handler.setLevel(file_level if file_level is not None else Logger_Level.file_level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger


def get_logger(name: str, log_filename: Optional[str] = None) -> logging.Logger:
    """
    Récupère un logger existant ou en crée un nouveau avec la configuration par défaut.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Marquage démarré")
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        return setup_logger(name, log_filename=log_filename or "translation.log")
    return logger


def get_session_log_path(filename: str) -> Path:
    """Chemin complet d'un fichier dans le répertoire de session en cours."""
    return LogSession.get_session_dir() / filename
