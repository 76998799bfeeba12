"""Shared translation types."""

from enum import Enum


class Language(str, Enum):
    """Languages supported by the storefront."""

    EN = "en"
    IT = "it"
    ES = "es"
    FR = "fr"
    DE = "de"
    PT = "pt"


# Our codes -> DeepL target codes (European Portuguese)
DEEPL_TARGET_CODES = {
    Language.EN: "EN-US",
    Language.IT: "IT",
    Language.ES: "ES",
    Language.FR: "FR",
    Language.DE: "DE",
    Language.PT: "PT-PT",
}

# DeepL source codes carry no regional variant
DEEPL_SOURCE_CODES = {lang: lang.value.upper() for lang in Language}
