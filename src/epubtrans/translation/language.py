from enum import Enum


class Language(Enum):
    # Les valeurs sont transmises telles quelles au modèle et aux consignes
    ENGLISH = "english"
    VIETNAMESE = "vietnamese"
    FRENCH = "french"
    GERMAN = "german"
    SPANISH = "spanish"
    ITALIAN = "italian"
    PORTUGUESE = "portuguese"
    RUSSIAN = "russian"
    JAPANESE = "japanese"
    KOREAN = "korean"
    SIMPLIFIED_CHINESE = "simplified chinese"
    TRADITIONAL_CHINESE = "traditional chinese"
