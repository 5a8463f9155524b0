"""
Constantes utilisées pour le marquage et la manipulation des pages HTML.
"""

# Attribut portant l'identifiant du segment sur la balise originale
CONTENT_ID_ATTR = "data-content-id"

# Attribut portant l'identifiant du segment sur l'emplacement de traduction
TRANSLATION_ID_ATTR = "data-translation-id"

# Empreinte du texte source au moment de la traduction (détection des changements)
SOURCE_HASH_ATTR = "data-source-hash"

# Présent sur un emplacement : le segment doit être retraduit
RETRANSLATE_ATTR = "data-retranslate"

ORIGINAL_CLASS = "original"
TRANSLATION_CLASS = "translation"

# Balises de texte : elles ne forment jamais un segment à elles seules.
# Toute autre balise contenant du texte (p, div, td, pre, ...) peut en former un.
INLINE_TAGS = {
    "a",
    "abbr",
    "b",
    "bdi",
    "bdo",
    "big",
    "br",
    "cite",
    "code",
    "data",
    "del",
    "dfn",
    "em",
    "font",
    "i",
    "img",
    "ins",
    "kbd",
    "label",
    "mark",
    "q",
    "rp",
    "rt",
    "ruby",
    "s",
    "samp",
    "small",
    "span",
    "strike",
    "strong",
    "sub",
    "sup",
    "time",
    "tt",
    "u",
    "var",
    "wbr",
}

# Balises dont le contenu n'est jamais traduit
IGNORED_TAGS = {"script", "style", "noscript", "svg", "math"}
