"""Custom dictionary persistence, import/export and in-memory snapshot."""

import json
import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from ..errors import DictionaryError, EmptyDictionary, InvalidWordFormat
from .phonetic import DEFAULT_LANGUAGES

logger = logging.getLogger(__name__)

DictionaryMapping = Dict[str, List[str]]


def validate_word_list(content: str) -> List[str]:
    """Validate a newline-delimited word list.

    Lines are trimmed, empty lines skipped, and words lowercased.

    Raises:
        InvalidWordFormat: A line contains anything but letters
        EmptyDictionary: No valid word was found
    """
    valid_words = []
    for line in content.split('\n'):
        word = line.strip()
        if not word:
            continue
        if not word.isalpha():
            raise InvalidWordFormat(word)
        valid_words.append(word.lower())
    if not valid_words:
        raise EmptyDictionary()
    return valid_words


class Dictionary:
    """Thread-safe holder for the current dictionary snapshot."""

    def __init__(self, words: Optional[DictionaryMapping] = None):
        self._lock = threading.Lock()
        self._words: DictionaryMapping = dict(words or {})

    def get(self) -> DictionaryMapping:
        with self._lock:
            return {word: list(langs) for word, langs in self._words.items()}

    def set(self, words: DictionaryMapping) -> None:
        with self._lock:
            self._words = dict(words)

    def words(self) -> List[str]:
        with self._lock:
            return list(self._words.keys())


class DictionaryStore:
    """Stores the dictionary as a JSON object ``{word: [languages]}``."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> DictionaryMapping:
        """Load the dictionary; a missing file is an empty dictionary."""
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise DictionaryError(f"Failed to load dictionary {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise DictionaryError(f"Dictionary file must contain an object: {self.path}")

        words: DictionaryMapping = {}
        for word, languages in data.items():
            if not isinstance(languages, list):
                raise DictionaryError(f"Languages for '{word}' must be a list")
            words[word] = [str(lang) for lang in languages]
        return words

    def save(self, words: DictionaryMapping) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(words, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise DictionaryError(f"Failed to save dictionary {self.path}: {e}") from e
        logger.debug(f"Dictionary saved: {len(words)} words -> {self.path}")

    def set_words(self, words: Iterable[str]) -> DictionaryMapping:
        """Replace the dictionary, keeping languages of words already present."""
        current = self.load()
        updated: DictionaryMapping = {}
        for word in words:
            updated[word] = current.get(word, list(DEFAULT_LANGUAGES))
        self.save(updated)
        return updated

    def add_words(self, words: Iterable[str]) -> DictionaryMapping:
        """Add words with the default languages; existing entries are kept."""
        dictionary = self.load()
        for word in words:
            dictionary.setdefault(word, list(DEFAULT_LANGUAGES))
        self.save(dictionary)
        return dictionary

    def import_words(self, file_path: Union[str, Path]) -> DictionaryMapping:
        """Merge a newline-delimited word list into the dictionary."""
        try:
            content = Path(file_path).read_text(encoding='utf-8')
        except OSError as e:
            raise DictionaryError(f"Failed to read {file_path}: {e}") from e
        logger.debug(f"Importing dictionary from file: {file_path}")
        return self.add_words(validate_word_list(content))

    def export_words(self, file_path: Union[str, Path]) -> int:
        """Write dictionary words one per line; returns the word count."""
        words = list(self.load().keys())
        logger.debug(f"Exporting dictionary to file: {file_path}")
        try:
            Path(file_path).write_text("\n".join(words), encoding='utf-8')
        except OSError as e:
            raise DictionaryError(f"Failed to write {file_path}: {e}") from e
        return len(words)
