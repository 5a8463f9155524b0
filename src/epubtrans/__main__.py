"""
Point d'entrée en ligne de commande.

Commandes :
    epubtrans mark <répertoire>
        Marque les segments de tous les documents (X)HTML du répertoire.

    epubtrans translate <répertoire> --source english --target vietnamese
        Marque puis traduit les segments non traduits et affiche le rapport.

La clé API et le modèle sont lus depuis l'environnement (.env inclus),
voir TranslatorConfig.from_env().
"""

import argparse
import json
import sys
from typing import Optional

from . import __version__
from .cache import TranslationCache
from .config import TranslatorConfig, lock_config
from .errors import EpubTransError
from .htmlpage import mark_files
from .llm import OpenAITranslator
from .logger import get_logger
from .store import UsageStore
from .translation import BookTranslator, find_documents

logger = get_logger(__name__)


def main(argv: Optional[list[str]] = None) -> int:
    """
    Point d'entrée principal du programme.

    Returns:
        Code de sortie : 0 si tout a réussi, 1 en cas d'échec partiel ou de
        configuration invalide, 130 après une interruption
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    lock_config()

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\n❌ Interrompu par l'utilisateur", file=sys.stderr)
        return 130
    except (EpubTransError, OSError) as e:
        logger.error(f"❌ {e}")
        print(f"❌ {e}", file=sys.stderr)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="epubtrans",
        description=f"epubtrans v{__version__} - marquage et traduction d'EPUB décompressés",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command")

    # --- mark ---
    p_mark = subparsers.add_parser("mark", help="Marque les segments traduisibles")
    p_mark.add_argument("directory", help="Répertoire de l'EPUB décompressé")
    p_mark.set_defaults(func=_cmd_mark)

    # --- translate ---
    p_translate = subparsers.add_parser("translate", help="Traduit les segments non traduits")
    p_translate.add_argument("directory", help="Répertoire de l'EPUB décompressé")
    p_translate.add_argument("--source", default="english", help="Langue source (défaut: english)")
    p_translate.add_argument(
        "--target", default="vietnamese", help="Langue cible (défaut: vietnamese)"
    )
    p_translate.add_argument(
        "--concurrency", type=int, default=1,
        help="Nombre maximum de traductions parallèles (défaut: 1)",
    )
    p_translate.add_argument("--book", default="", help="Titre ou contexte du livre")
    p_translate.add_argument(
        "--instructions", default="", help="Consignes ajoutées à chaque requête"
    )
    p_translate.add_argument(
        "--retranslate", nargs="*", default=[], metavar="ID",
        help="Identifiants de segments à retraduire de force",
    )
    p_translate.add_argument("--model", default=None, help="Modèle (remplace MODEL)")
    p_translate.add_argument(
        "--domain", default=None,
        help="Template de consignes : technical ou psychology (remplace TRANSLATION_DOMAIN)",
    )
    p_translate.add_argument(
        "--json", action="store_true", help="Affiche le rapport au format JSON"
    )
    p_translate.add_argument(
        "--no-progress", action="store_true", help="Désactive la barre de progression"
    )
    p_translate.set_defaults(func=_cmd_translate)

    return parser


def _cmd_mark(args: argparse.Namespace) -> int:
    documents = find_documents(args.directory)
    total, errors = mark_files(documents)
    print(f"🏷️ {total} segment(s) marqué(s) dans {len(documents)} document(s)")
    for error in errors:
        print(f"   ❌ {error}")
    return 1 if errors else 0


def _cmd_translate(args: argparse.Namespace) -> int:
    overrides = {}
    if args.model:
        overrides["model"] = args.model
    if args.domain:
        overrides["domain"] = args.domain
    config = TranslatorConfig.from_env(**overrides)

    backend = OpenAITranslator(config, UsageStore(config.metadata_path))
    cache = TranslationCache(ttl=config.cache_ttl, max_cost=config.cache_max_cost)
    translator = BookTranslator(backend, cache, show_progress=not args.no_progress)

    report = translator.run(
        find_documents(args.directory),
        args.source,
        args.target,
        args.concurrency,
        book_context=args.book,
        instructions=args.instructions,
        retranslate=args.retranslate,
    )

    if args.json:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    else:
        print("\n".join(report.summary_lines()))

    if report.cancelled:
        return 130
    return 1 if report.failed or report.failed_documents else 0


if __name__ == "__main__":
    sys.exit(main())
