"""
Découverte des documents (X)HTML d'un EPUB décompressé.
"""

from pathlib import Path

DOCUMENT_SUFFIXES = (".xhtml", ".html", ".htm")


def find_documents(unpacked_dir: str | Path) -> list[Path]:
    """
    Liste les documents (X)HTML d'un répertoire, récursivement.

    L'ordre est trié par chemin pour que deux exécutions sur le même
    répertoire parcourent les documents dans le même ordre.

    Raises:
        NotADirectoryError: `unpacked_dir` n'est pas un répertoire
    """
    root = Path(unpacked_dir)
    if not root.is_dir():
        raise NotADirectoryError(f"Répertoire introuvable : {root}")
    return sorted(
        path
        for path in root.rglob("*")
        if path.is_file() and path.suffix.lower() in DOCUMENT_SUFFIXES
    )
