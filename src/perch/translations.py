"""Translation bundles.

A bundle is an INI file of sections, each a group of key/value strings::

    [labels]
    name = Nome
    population = Popolazione

    [messages]
    saved = Regione salvata

Parsed into ``{"labels": {"name": "Nome", ...}, "messages": {...}}``.
Keys keep their case and values are taken literally (no ``%`` interpolation).
"""

import configparser
from pathlib import Path
from typing import TypeAlias

from perch.errors import TranslationNotFoundError

Bundle: TypeAlias = dict[str, dict[str, str]]


class TranslationLoader:
    """Parses translation bundles from disk."""

    __slots__ = ()

    def load(self, path: str | Path) -> Bundle:
        """Parse the bundle at *path*.

        Raises ``TranslationNotFoundError`` if *path* is not a file.
        """
        path = Path(path)
        if not path.is_file():
            raise TranslationNotFoundError(str(path))
        parser = configparser.ConfigParser(interpolation=None)
        parser.optionxform = str  # type: ignore[assignment,method-assign]
        parser.read(path, encoding="utf-8")
        return {section: dict(parser.items(section)) for section in parser.sections()}
