"""
Persistance des métadonnées d'usage du backend de traduction.

Les compteurs sont stockés dans un fichier JSON (par défaut
unpackage/translator_metadata.json) :

    {
      "total_calls": 12,
      "last_used": "2024-10-19T14:30:22",
      "model_usage": {"gpt-4o-mini": 12},
      "prompt_examples": ["Hello world", ...],
      "token_usage": 4521,
      "token_usage_list": [{"input_tokens": 310, "output_tokens": 95}, ...]
    }

Notes d'implémentation:
    - Un fichier absent ou corrompu donne des valeurs par défaut ; le fichier
      corrompu est conservé sous *.backup
    - La sauvegarde est best-effort : une erreur d'écriture est loggée et ne
      remonte jamais jusqu'à l'appel de traduction
"""

import json
import os
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from .config import DEFAULT_METADATA_PATH
from .errors import PersistenceError
from .logger import get_logger

logger = get_logger(__name__)

MAX_PROMPT_EXAMPLES = 5
PROMPT_EXAMPLE_LENGTH = 100
MAX_TOKEN_USAGE_ENTRIES = 1000


@dataclass
class UsageMetadata:
    total_calls: int = 0
    last_used: Optional[str] = None
    model_usage: dict[str, int] = field(default_factory=dict)
    prompt_examples: list[str] = field(default_factory=list)
    token_usage: int = 0
    token_usage_list: list[dict[str, int]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UsageMetadata":
        """Construit les métadonnées depuis un JSON, en ignorant les clés inconnues."""
        return cls(
            total_calls=int(data.get("total_calls", 0)),
            last_used=data.get("last_used"),
            model_usage={str(k): int(v) for k, v in data.get("model_usage", {}).items()},
            prompt_examples=[str(p) for p in data.get("prompt_examples", [])],
            token_usage=int(data.get("token_usage", 0)),
            token_usage_list=list(data.get("token_usage_list", [])),
        )


class UsageStore:
    """
    Gestionnaire des métadonnées d'usage, partagé entre les workers.

    Les mutations passent par record(), qui prend un verrou, met à jour les
    compteurs puis sauvegarde le fichier.

    Attributes:
        path: Chemin du fichier JSON
        metadata: Métadonnées courantes (chargées à la construction)
    """

    def __init__(self, path: str | Path = DEFAULT_METADATA_PATH) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self.metadata = self.load()

    def load(self) -> UsageMetadata:
        """
        Charge les métadonnées depuis le disque.

        Returns:
            Les métadonnées sauvegardées, ou des valeurs par défaut si le fichier
            n'existe pas ou ne peut pas être lu
        """
        if not self.path.exists():
            return UsageMetadata()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("le contenu n'est pas un objet JSON")
            return UsageMetadata.from_dict(data)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"⚠️ Métadonnées d'usage illisibles ({self.path}): {e}")
            self._backup_corrupted()
            return UsageMetadata()

    def save(self, metadata: Optional[UsageMetadata] = None) -> bool:
        """
        Sauvegarde les métadonnées (best-effort).

        Returns:
            True si l'écriture a réussi, False sinon (l'erreur est loggée)
        """
        metadata = metadata or self.metadata
        try:
            self._write(metadata)
        except PersistenceError as e:
            logger.error(f"❌ {e}")
            return False
        return True

    def record(
        self,
        model: str,
        content: str,
        input_tokens: int = 0,
        output_tokens: int = 0,
    ) -> None:
        """
        Enregistre un appel de traduction réussi puis sauvegarde.

        Args:
            model: Identifiant du modèle utilisé
            content: Texte envoyé (un extrait est conservé comme exemple)
            input_tokens: Tokens du prompt
            output_tokens: Tokens de la réponse
        """
        with self._lock:
            meta = self.metadata
            meta.total_calls += 1
            meta.last_used = datetime.now().isoformat(timespec="seconds")
            meta.model_usage[model] = meta.model_usage.get(model, 0) + 1

            meta.prompt_examples.append(content[:PROMPT_EXAMPLE_LENGTH])
            del meta.prompt_examples[:-MAX_PROMPT_EXAMPLES]

            meta.token_usage += input_tokens + output_tokens
            meta.token_usage_list.append(
                {"input_tokens": input_tokens, "output_tokens": output_tokens}
            )
            del meta.token_usage_list[:-MAX_TOKEN_USAGE_ENTRIES]

            self.save(meta)

    def _write(self, metadata: UsageMetadata) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(asdict(metadata), f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(
                f"Impossible d'écrire les métadonnées dans {self.path}: {e}"
            ) from e

    def _backup_corrupted(self) -> None:
        backup = self.path.with_name(self.path.name + ".backup")
        try:
            os.replace(self.path, backup)
            logger.info(f"💾 Fichier corrompu déplacé vers {backup}")
        except OSError as e:
            logger.error(f"❌ Impossible de sauvegarder le fichier corrompu : {e}")
