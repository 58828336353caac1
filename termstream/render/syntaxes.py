# termstream/render/syntaxes.py
"""Syntax lookup for fenced code blocks.

Syntaxes are identified by their Pygments lexer alias (a plain string),
so render state stays hashable and immutable. Lexers are created on
first use and shared process-wide through lru_cache.
"""

import logging
from functools import lru_cache
from typing import Optional

from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name, get_lexer_for_filename, guess_lexer
from pygments.util import ClassNotFound

logger = logging.getLogger(__name__)

# Syntax used for every line outside a fenced code block
MARKDOWN_SYNTAX = "markdown"

# Common language aliases mapping
LANGUAGE_ALIASES = {
    'js': 'javascript',
    'ts': 'typescript',
    'py': 'python',
    'rb': 'ruby',
    'yml': 'yaml',
    'sh': 'bash',
    'shell': 'bash',
    'zsh': 'bash',
    'dockerfile': 'docker',
    'md': 'markdown',
    'cs': 'csharp',
    'objective-c': 'objectivec',
}

# First lines that reliably announce a language
_SNIFF_PREFIXES = ('#!', '<?php', '<?xml', '<!DOCTYPE', '<!doctype', '<html')


@lru_cache(maxsize=None)
def get_lexer(name: str) -> Lexer:
    """Return the shared lexer for a syntax name.

    The lexer neither strips nor appends newlines: every line is
    highlighted on its own, exactly as given.

    Raises:
        ClassNotFound: If Pygments has no lexer of that name.
    """
    return get_lexer_by_name(name, stripnl=False, stripall=False, ensurenl=False)


@lru_cache(maxsize=256)
def find_syntax(lang: str) -> Optional[str]:
    """Resolve a fence language tag to a syntax name.

    Tries the alias table, then Pygments lexer names, then file
    extensions (``rs`` -> rust).

    Args:
        lang: Language tag from the fence line, e.g. "rust" or "js".

    Returns:
        The canonical lexer alias, or None if the tag is unknown.
    """
    if not lang:
        return None
    name = LANGUAGE_ALIASES.get(lang.lower(), lang.lower())
    try:
        lexer = get_lexer_by_name(name)
    except ClassNotFound:
        try:
            lexer = get_lexer_for_filename(f"code.{lang}")
        except ClassNotFound:
            logger.debug("No syntax for code block language %r", lang)
            return None
    return lexer.aliases[0] if lexer.aliases else name


@lru_cache(maxsize=256)
def sniff_syntax(line: str) -> Optional[str]:
    """Guess a syntax from the first line of an untagged code block.

    Only lines with an unambiguous marker (shebang, XML/PHP/HTML
    prologue) are considered; anything else stays unresolved.
    """
    stripped = line.strip()
    if not stripped.startswith(_SNIFF_PREFIXES):
        return None
    try:
        lexer = guess_lexer(stripped)
    except ClassNotFound:
        return None
    if not lexer.aliases or lexer.aliases[0] == 'text':
        return None
    return lexer.aliases[0]
