"""Shell-word tokenization and whole-word matching for the guard.

Only what the rules need: quoted words stay intact, control operators
become their own tokens, and flags are recognised by shape.
"""

from __future__ import annotations

import shlex
import string

_WORD_CHARS = frozenset(string.ascii_letters + string.digits + "_")
_LONG_FLAG_CHARS = _WORD_CHARS | {"-"}


def is_word_char(ch: str) -> bool:
    return ch in _WORD_CHARS


def contains_word(text: str, word: str) -> bool:
    """Return True if *word* occurs in *text* bounded by non-word chars."""
    if not word:
        return False
    start = text.find(word)
    while start != -1:
        end = start + len(word)
        before_ok = start == 0 or not is_word_char(text[start - 1])
        after_ok = end == len(text) or not is_word_char(text[end])
        if before_ok and after_ok:
            return True
        start = text.find(word, start + 1)
    return False


def tokenize(command: str) -> list[str]:
    """Split *command* into shell words.

    Falls back to whitespace splitting when the quoting is unbalanced.
    """
    lexer = shlex.shlex(command, posix=True, punctuation_chars=";&|()")
    lexer.whitespace_split = True
    lexer.commenters = ""
    try:
        return list(lexer)
    except ValueError:
        return command.split()


def command_groups(command: str, word: str, depth: int = 3) -> list[list[str]]:
    """Tokenize *command* plus any quoted commands mentioning *word*.

    ``bash -c 'chezmoi apply'`` yields ``[["bash", "-c", "chezmoi apply"],
    ["chezmoi", "apply"]]``. Nesting is followed *depth* levels down.
    """
    tokens = tokenize(command)
    groups = [tokens]
    if depth <= 0:
        return groups
    for token in tokens:
        if any(ch.isspace() for ch in token) and contains_word(token, word):
            groups.extend(command_groups(token, word, depth - 1))
    return groups


def is_flag(token: str) -> bool:
    """``--long-name`` or ``-x`` (a single letter)."""
    if token.startswith("--"):
        name = token[2:]
        return bool(name) and all(ch in _LONG_FLAG_CHARS for ch in name)
    return len(token) == 2 and token[0] == "-" and token[1] in string.ascii_letters


def strip_flags(tokens: list[str]) -> list[str]:
    return [t for t in tokens if not is_flag(t)]


def command_name(token: str) -> str:
    """Last path component: ``/usr/bin/chezmoi`` → ``chezmoi``."""
    return token.rsplit("/", 1)[-1]
