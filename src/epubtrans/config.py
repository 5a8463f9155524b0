import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError


class ConfigBase:
    # Un seul objet par sous-classe, verrouillable après initialisation
    _instance = None
    _locked: bool = False

    def __new__(cls, *args, **kwargs):
        if cls.__dict__.get("_instance") is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def lock(self):
        if not self._locked:
            object.__setattr__(self, "_locked", True)

    def __setattr__(self, name, value):
        if getattr(self, "_locked", False):
            raise AttributeError("Configuration is locked")
        super().__setattr__(name, value)


class TemplateNames(ConfigBase):
    Technical_Template: str = "technical.jinja"
    Psychology_Template: str = "psychology.jinja"


class Logger_Level(ConfigBase):
    level: int = logging.INFO
    console_level: int = logging.WARNING
    file_level: int = logging.DEBUG
    log_dir: str = "logs"


def lock_config():
    """Verrouille la configuration pour empêcher les modifications ultérieures."""
    Logger_Level().lock()
    TemplateNames().lock()


DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_API_URL = "https://api.openai.com/v1"
DEFAULT_CACHE_TTL = 15 * 60.0
DEFAULT_CACHE_MAX_COST = 10_000_000
DEFAULT_METADATA_PATH = Path("unpackage") / "translator_metadata.json"


@dataclass
class TranslatorConfig:
    """
    Configuration du backend de traduction.

    Chaque champ a un effet précis :
        api_key: authentification auprès du backend
        model: sélectionne le modèle (comportement et coût)
        temperature: variabilité des traductions
        max_tokens: taille maximale de la réponse
        guidelines: remplace le template système (texte Jinja2)
        domain: template de consignes à utiliser ("technical", "psychology")
    """

    api_key: str
    base_url: str = DEFAULT_API_URL
    model: str = DEFAULT_MODEL
    temperature: float = 0.3
    max_tokens: int = 8192
    guidelines: Optional[str] = None
    domain: str = "technical"
    cache_ttl: float = DEFAULT_CACHE_TTL
    cache_max_cost: int = DEFAULT_CACHE_MAX_COST
    max_retries: int = 3
    retry_delay: float = 1.0
    metadata_path: Path = DEFAULT_METADATA_PATH

    @classmethod
    def from_env(cls, **overrides) -> "TranslatorConfig":
        """
        Construit la configuration depuis les variables d'environnement (.env inclus).

        Variables lues : API_KEY (ou OPENAI_API_KEY), API_URL, MODEL,
        TEMPERATURE, MAX_TOKENS, TRANSLATION_GUIDELINES, TRANSLATION_DOMAIN.
        Les arguments nommés ont priorité sur l'environnement.

        Raises:
            ConfigError: Si aucune clé API n'est disponible ou si une valeur
                numérique est invalide
        """
        load_dotenv()

        api_key = overrides.pop("api_key", None) or os.getenv("API_KEY") or os.getenv(
            "OPENAI_API_KEY"
        )
        if not api_key:
            raise ConfigError(
                "La clé API n'est pas définie : ajoutez API_KEY=sk-... dans .env"
            )

        values: dict = {
            "base_url": os.getenv("API_URL", DEFAULT_API_URL),
            "model": os.getenv("MODEL", DEFAULT_MODEL),
            "guidelines": os.getenv("TRANSLATION_GUIDELINES") or None,
            "domain": os.getenv("TRANSLATION_DOMAIN", "technical"),
        }
        try:
            if os.getenv("TEMPERATURE"):
                values["temperature"] = float(os.environ["TEMPERATURE"])
            if os.getenv("MAX_TOKENS"):
                values["max_tokens"] = int(os.environ["MAX_TOKENS"])
        except ValueError as e:
            raise ConfigError(f"Valeur numérique invalide dans l'environnement : {e}") from e

        values.update(overrides)
        return cls(api_key=api_key, **values)
