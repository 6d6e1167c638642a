"""Exception types raised across the dictation pipeline."""


class DictatoError(Exception):
    """Base class for all Dictato errors."""


class DeviceError(DictatoError):
    """No usable input device, or the device format is not supported."""


class CaptureIOError(DictatoError):
    """Creating, writing or finalizing the recording file failed."""


class TranscriptionError(DictatoError):
    """Engine could not be loaded or failed to transcribe."""


class DictionaryError(DictatoError):
    """Dictionary import/validation or phonetic matching failure."""


class InvalidWordFormat(DictionaryError):
    def __init__(self, word: str):
        self.word = word
        super().__init__(
            f"Invalid word format: {word}. Words must contain only letters (a-z, A-Z)"
        )


class EmptyDictionary(DictionaryError):
    def __init__(self):
        super().__init__("Dictionary import must contain at least one valid word")


class LLMError(DictatoError):
    """Language-model refinement failed (connection, timeout, bad response)."""


class FormattingError(DictatoError):
    """Formatting rules could not be loaded or applied."""
