"""
Cache mémoire des traductions, adressé par le contenu.

Les entrées expirent après un TTL (15 minutes par défaut) et peuvent être
évincées avant, selon l'ordre LRU, dès que le coût total (somme des longueurs
des traductions) dépasse `max_cost`. Un miss n'est jamais une erreur.
"""

import hashlib
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from .config import DEFAULT_CACHE_MAX_COST, DEFAULT_CACHE_TTL

KEY_SEPARATOR = "\x1f"


def make_cache_key(
    content: str,
    instructions: str,
    source_lang: str,
    target_lang: str,
    style: str = "",
    book_context: str = "",
) -> str:
    """
    Calcule la clé de cache d'une traduction.

    Le style (identité du template de consignes) et le contexte du livre font
    partie de la clé : un même texte traduit avec d'autres consignes donne
    une autre entrée.

    Returns:
        Empreinte sha256 hexadécimale
    """
    raw = KEY_SEPARATOR.join(
        (content, instructions, source_lang, target_lang, style, book_context)
    )
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


@dataclass
class CacheEntry:
    value: str
    expires_at: float
    cost: int


class TranslationCache:
    """
    Cache LRU borné en coût avec expiration, sûr entre threads.

    Toutes les opérations prennent un verrou unique ; les sections critiques
    sont courtes (aucun appel réseau sous le verrou).

    Example:
        >>> cache = TranslationCache(ttl=60)
        >>> cache.set_with_ttl("k", "Bonjour")
        >>> cache.get("k")
        'Bonjour'
    """

    def __init__(
        self,
        ttl: float = DEFAULT_CACHE_TTL,
        max_cost: int = DEFAULT_CACHE_MAX_COST,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_cost <= 0:
            raise ValueError("max_cost doit être strictement positif")
        self.ttl = ttl
        self.max_cost = max_cost
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._total_cost = 0
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            if entry.expires_at <= self._clock():
                self._remove(key)
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return entry.value

    def set_with_ttl(self, key: str, value: str, ttl: Optional[float] = None) -> bool:
        """
        Enregistre une valeur avec une durée de vie.

        Args:
            key: Clé (voir make_cache_key)
            value: Traduction à conserver
            ttl: Durée de vie en secondes (None = TTL par défaut du cache)

        Returns:
            False si la valeur est plus coûteuse que le cache entier (non stockée)
        """
        cost = max(len(value), 1)
        if cost > self.max_cost:
            return False

        lifetime = self.ttl if ttl is None else ttl
        with self._lock:
            if key in self._entries:
                self._remove(key)
            self._entries[key] = CacheEntry(value, self._clock() + lifetime, cost)
            self._total_cost += cost
            self._evict()
        return True

    def delete(self, key: str) -> None:
        with self._lock:
            if key in self._entries:
                self._remove(key)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._total_cost = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def total_cost(self) -> int:
        return self._total_cost

    def _remove(self, key: str) -> None:
        entry = self._entries.pop(key)
        self._total_cost -= entry.cost

    def _evict(self) -> None:
        # Expirées d'abord, puis les moins récemment utilisées
        if self._total_cost <= self.max_cost:
            return
        now = self._clock()
        for key in [k for k, e in self._entries.items() if e.expires_at <= now]:
            self._remove(key)
        while self._total_cost > self.max_cost and self._entries:
            oldest = next(iter(self._entries))
            self._remove(oldest)
