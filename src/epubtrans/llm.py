import datetime
import hashlib
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from openai import OpenAI, OpenAIError, RateLimitError
from openai.types.chat import ChatCompletionMessageParam

from .config import TemplateNames, TranslatorConfig
from .errors import (
    BackendError,
    ConfigError,
    MaxRetriesExceeded,
    RateLimited,
    TranslationCancelled,
)
from .logger import get_logger, get_session_log_path
from .store import UsageStore

logger = get_logger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"

USER_PREFIX = "Translate this and not say anything otherwise the translation: "


def build_instructions(instructions: str, previous_translation: Optional[str]) -> str:
    """
    Ajoute la traduction précédente en tête des consignes utilisateur.

    Le modèle affine alors la traduction existante au lieu d'en produire une
    nouvelle indépendante.

    Example:
        >>> build_instructions("Plus formel", "Salut")
        'Previous translation:\\n\\nSalut\\n\\nPlus formel'
    """
    if previous_translation:
        return f"Previous translation:\n\n{previous_translation}\n\n{instructions}"
    return instructions


class Translator(ABC):
    """
    Capacité de traduction utilisée par l'orchestrateur.

    Toute implémentation est substituable. `style_id` identifie les consignes
    système en vigueur et entre dans la clé de cache.
    """

    style_id: str = ""

    @abstractmethod
    def translate(
        self,
        content: str,
        instructions: str = "",
        source_lang: str = "english",
        target_lang: str = "vietnamese",
        book_context: str = "",
        previous_translation: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        """
        Traduit `content` et retourne le texte traduit.

        Raises:
            BackendError: Erreur non récupérable du backend
            MaxRetriesExceeded: Limitation de débit persistante
            TranslationCancelled: `cancel_event` activé pendant un backoff
        """


class OpenAITranslator(Translator):
    """
    Backend de traduction pour les API compatibles OpenAI (OpenAI, DeepSeek, ...).

    avec :
      - consignes système rendues depuis un template Jinja2 (par domaine),
      - retry linéaire (tentative * retry_delay) sur limitation de débit,
      - enregistrement de l'usage après chaque appel réussi,
      - un fichier de log par requête dans le répertoire de session.

    Aucun verrou n'entoure l'appel réseau : plusieurs workers peuvent
    traduire en parallèle avec la même instance.
    """

    def __init__(
        self,
        config: TranslatorConfig,
        usage_store: Optional[UsageStore] = None,
        client: Optional[OpenAI] = None,
        prompt_dir: str | Path = TEMPLATE_DIR,
    ):
        self.config = config
        self.model_name = config.model
        self.max_retries = max(1, config.max_retries)
        self.retry_delay = config.retry_delay
        self.usage_store = usage_store
        # Les retries sont gérés ici, pas par le SDK
        self.client = client or OpenAI(
            api_key=config.api_key, base_url=config.base_url, max_retries=0
        )

        self.env = Environment(
            loader=FileSystemLoader(str(prompt_dir)),
            autoescape=select_autoescape(["html", "xml"], default_for_string=False),
        )
        self._guidelines_source, self.style_id = self._resolve_guidelines()

        self._log_counter = 0
        self._log_lock = threading.Lock()

    # -----------------------------------
    # 🔹 Consignes système
    # -----------------------------------
    def _resolve_guidelines(self) -> tuple[str, str]:
        """Retourne (source du template, identifiant de style)."""
        if self.config.guidelines:
            source = self.config.guidelines
            name = "custom"
        else:
            templates = {
                "technical": TemplateNames.Technical_Template,
                "psychology": TemplateNames.Psychology_Template,
            }
            template_name = templates.get(self.config.domain)
            if template_name is None:
                raise ConfigError(
                    f"Domaine de consignes inconnu : {self.config.domain!r} "
                    f"(attendu : {', '.join(templates)})"
                )
            try:
                source = self.env.loader.get_source(self.env, template_name)[0]  # type: ignore[union-attr]
            except TemplateNotFound as e:
                raise ConfigError(f"Template introuvable : {template_name}") from e
            name = self.config.domain

        digest = hashlib.sha256(source.encode("utf-8")).hexdigest()[:12]
        return source, f"{name}:{digest}"

    def render_system(self, source_lang: str, target_lang: str, book_name: str) -> str:
        """Rend les consignes système pour une paire de langues et un livre."""
        template = self.env.from_string(self._guidelines_source)
        return template.render(
            source_language=source_lang,
            target_language=target_lang,
            book_name=book_name,
        ).strip()

    # -----------------------------------
    # 🔹 Gestion du log
    # -----------------------------------
    def _create_log(self, prompt: str, content: str) -> Path:
        timestamp = datetime.datetime.now().isoformat().replace(":", "-")
        with self._log_lock:
            self._log_counter += 1
            counter = self._log_counter
        log_path = get_session_log_path(f"llm_{counter:04d}_{timestamp}.log")

        header = (
            f"=== LLM REQUEST LOG ===\n"
            f"Timestamp : {timestamp}\n"
            f"Model     : {self.model_name}\n"
            f"Prompt len: {len(prompt)} chars\n"
            f"{'-'*40}\n\n"
            f"--- PROMPT ---\n{prompt}\n\n"
            f"--- CONTENT ---\n{content}\n\n"
            f"--- RESPONSE ---\n"
        )
        with open(log_path, "w", encoding="utf-8") as f:
            f.write(header)
        return log_path

    def _append_response(self, log_path: Path, response: str):
        with open(log_path, "a", encoding="utf-8") as f:
            f.write(response.strip() + "\n")

    # -----------------------------------
    # 🔹 Traduction
    # -----------------------------------
    def translate(
        self,
        content: str,
        instructions: str = "",
        source_lang: str = "english",
        target_lang: str = "vietnamese",
        book_context: str = "",
        previous_translation: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        system_prompt = self.render_system(source_lang, target_lang, book_context)
        user_instructions = build_instructions(instructions, previous_translation)

        messages: list[ChatCompletionMessageParam] = [
            {"role": "system", "content": system_prompt},
        ]
        if user_instructions:
            messages.append({"role": "system", "content": user_instructions})
        messages.append({"role": "user", "content": USER_PREFIX + content})

        prompt = "\n\n".join(filter(None, (system_prompt, user_instructions)))
        log_path = self._create_log(prompt, content)

        try:
            resp = self._create_with_retry(messages, cancel_event)
        except (BackendError, MaxRetriesExceeded, TranslationCancelled) as e:
            self._append_response(log_path, f"[{type(e).__name__}: {e}]")
            raise

        translation = resp.choices[0].message.content if resp.choices else None
        if not translation or not translation.strip():
            self._append_response(log_path, "[BackendError: réponse vide]")
            raise BackendError("no translation received")
        translation = translation.strip()
        self._append_response(log_path, translation)

        if self.usage_store is not None:
            usage = resp.usage
            self.usage_store.record(
                self.model_name,
                content,
                input_tokens=(usage.prompt_tokens or 0) if usage else 0,
                output_tokens=(usage.completion_tokens or 0) if usage else 0,
            )

        logger.info(f"✅ Requête LLM réussie ({len(content)} chars)")
        return translation

    def _create_with_retry(
        self,
        messages: list[ChatCompletionMessageParam],
        cancel_event: Optional[threading.Event],
    ):
        """
        Envoie la requête, en réessayant uniquement sur limitation de débit.

        Le délai entre deux tentatives croît linéairement : tentative * retry_delay.
        L'attente est interrompue dès que `cancel_event` est activé.
        """
        for attempt in range(1, self.max_retries + 1):
            if cancel_event is not None and cancel_event.is_set():
                raise TranslationCancelled("traduction annulée avant l'envoi")
            try:
                return self._send(messages)
            except RateLimited as e:
                logger.warning(
                    f"🚦 Limite de débit atteinte (tentative {attempt}/{self.max_retries}): {e}"
                )
                if attempt >= self.max_retries:
                    logger.error(f"❌ Échec définitif après {attempt} tentatives")
                    raise MaxRetriesExceeded(attempt, e) from e

                delay = attempt * self.retry_delay
                logger.info(f"⏳ Attente de {delay:.1f}s avant nouvelle tentative...")
                if cancel_event is not None:
                    if cancel_event.wait(delay):
                        raise TranslationCancelled(
                            "traduction annulée pendant l'attente"
                        ) from e
                else:
                    time.sleep(delay)

        raise ValueError(f"max_retries doit être >= 1 (reçu {self.max_retries})")

    def _send(self, messages: list[ChatCompletionMessageParam]):
        try:
            return self.client.chat.completions.create(
                model=self.model_name,
                messages=messages,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        except RateLimitError as e:
            raise RateLimited(str(e)) from e
        except OpenAIError as e:
            logger.error(f"❌ Erreur API: {e}")
            raise BackendError(str(e)) from e
