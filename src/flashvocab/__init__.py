"""FlashVocab: bilingual vocabulary lookup and spaced-repetition study backend."""

__version__ = "0.1.0"
