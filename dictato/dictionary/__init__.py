"""Custom dictionary and phonetic correction."""

from .phonetic import (
    DEFAULT_LANGUAGES,
    BeiderMorseEncoder,
    PhoneticDictionaryMatcher,
    fix_transcription_with_dictionary,
)
from .store import Dictionary, DictionaryStore, validate_word_list

__all__ = [
    "DEFAULT_LANGUAGES",
    "BeiderMorseEncoder",
    "PhoneticDictionaryMatcher",
    "fix_transcription_with_dictionary",
    "Dictionary",
    "DictionaryStore",
    "validate_word_list",
]
