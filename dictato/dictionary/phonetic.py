"""Phonetic (Beider-Morse) correction of transcripts against a user dictionary."""

import re
import string
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Set, Tuple

from abydos.phonetic import BeiderMorse

from ..errors import DictionaryError

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGES: Tuple[str, ...] = ("english", "french")

_ALTERNATES_SPLIT = re.compile(r"[\s|]+")


class PhoneticEncoder(Protocol):
    def encode(self, word: str, language: str) -> Set[str]:
        """Phonetic codes for ``word`` under one language's rules."""
        ...


class BeiderMorseEncoder:
    """Beider-Morse encoder with one rule set per language.

    ``BeiderMorse.encode`` returns all alternates in one string; they are
    split into a set so overlap can be tested.
    """

    def __init__(self, name_mode: str = "gen", match_mode: str = "approx"):
        self.name_mode = name_mode
        self.match_mode = match_mode
        self._encoders: Dict[str, BeiderMorse] = {}

    def _encoder_for(self, language: str) -> BeiderMorse:
        encoder = self._encoders.get(language)
        if encoder is None:
            try:
                encoder = BeiderMorse(language_arg=language,
                                      name_mode=self.name_mode,
                                      match_mode=self.match_mode)
            except (KeyError, ValueError) as e:
                raise DictionaryError(f"Unknown phonetic language '{language}': {e}") from e
            self._encoders[language] = encoder
        return encoder

    def encode(self, word: str, language: str) -> Set[str]:
        code = self._encoder_for(language).encode(word)
        return {alt for alt in _ALTERNATES_SPLIT.split(code) if alt}


def _languages_key(languages: Iterable[str]) -> Tuple[str, ...]:
    key = tuple(sorted({lang.strip().lower() for lang in languages if lang.strip()}))
    return key or DEFAULT_LANGUAGES


class PhoneticDictionaryMatcher:
    """Replaces transcript tokens that sound like dictionary words.

    Surrounding punctuation is stripped from a token before it is coded,
    and only the bare word is replaced, so "smyth," becomes "smith,".
    A token matches a dictionary word when their code sets intersect under
    the word's languages. On a match every occurrence of the token's text
    in the corrected transcript is replaced, substrings of longer words
    included. Further matches for the same token run against the already
    corrected text, so they only apply where the token text still occurs.
    A word whose languages have no phonetic rules is skipped with a
    warning; the rest of the dictionary still applies.
    """

    def __init__(self, encoder_factory=BeiderMorseEncoder):
        self._encoder_factory = encoder_factory

    def _codes(self, encoder: PhoneticEncoder, word: str,
               languages: Tuple[str, ...]) -> Set[str]:
        codes: Set[str] = set()
        for language in languages:
            codes |= encoder.encode(word, language)
        return codes

    def correct(self, transcription: str, dictionary: Mapping[str, Iterable[str]]) -> str:
        """Apply dictionary substitutions to ``transcription``.

        Raises:
            DictionaryError: If the phonetic rules cannot be used
        """
        if not dictionary:
            return transcription

        # Codes are recomputed on every call: the dictionary may have
        # changed since the last one.
        encoder = self._encoder_factory()
        encoded_dict: List[Tuple[str, Tuple[str, ...], Set[str]]] = []
        for word, languages in dictionary.items():
            langs = _languages_key(languages)
            try:
                encoded_dict.append((word, langs, self._codes(encoder, word, langs)))
            except DictionaryError as e:
                logger.warning(f"Skipping dictionary word '{word}': {e}")

        token_codes: Dict[Tuple[str, Tuple[str, ...]], Set[str]] = {}
        corrected = transcription
        for raw_token in transcription.split():
            token = raw_token.strip(string.punctuation)
            if not token:
                continue
            for dict_word, langs, dict_codes in encoded_dict:
                key = (token, langs)
                if key not in token_codes:
                    token_codes[key] = self._codes(encoder, token, langs)
                if dict_codes & token_codes[key]:
                    logger.debug(f"Phonetic match: '{token}' -> '{dict_word}'")
                    corrected = corrected.replace(token, dict_word)
        return corrected


def fix_transcription_with_dictionary(transcription: str,
                                      dictionary: Mapping[str, Iterable[str]],
                                      matcher: Optional[PhoneticDictionaryMatcher] = None) -> str:
    """Module-level shortcut used by the pipeline and the HTTP endpoint."""
    return (matcher or PhoneticDictionaryMatcher()).correct(transcription, dictionary)
