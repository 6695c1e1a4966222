"""Redaction of sensitive values from collected command lines.

Sensitive words are compiled into regular expressions that locate a
``key``/``delimiter``/``value`` triple inside a command line joined with
spaces. Matching values are replaced with a fixed mask while the flag and
its delimiter are kept verbatim, e.g. ``--db-password=hunter2`` becomes
``--db-password=********``.
"""

import logging
import re
import threading
from typing import Iterable, NamedTuple, Sequence

from process_agent.constants import DEFAULT_SENSITIVE_WORDS, REDACTED_VALUE

logger = logging.getLogger(__name__)

_FORBIDDEN_SYMBOLS = re.compile(r"[^a-zA-Z0-9_*]")


class CompiledWord(NamedTuple):
    """Outcome of compiling a single sensitive word."""

    word: str
    pattern: re.Pattern[str] | None
    reason: str | None = None

    @property
    def accepted(self) -> bool:
        return self.pattern is not None


def _expand_wildcards(word: str) -> str | None:
    """Translate ``*`` wildcards of a validated word into regex fragments.

    Returns None when the word holds two consecutive wildcards.
    """
    parts: list[str] = []
    for i, char in enumerate(word):
        if char != "*":
            parts.append(char)
        elif i == len(word) - 1:
            parts.append("[^ =]*")
        elif word[i + 1] == "*":
            return None
        else:
            # lazy prefix bounded by the next literal character
            parts.append(rf"[^{word[i + 1]}\s]*")
    return "".join(parts)


def compile_sensitive_word(word: str) -> CompiledWord:
    """Compile one sensitive word, recording why it was rejected if it was."""
    if not word or _FORBIDDEN_SYMBOLS.search(word):
        return CompiledWord(
            word,
            None,
            "must contain only alphanumeric characters, underscores or wildcards ('*')",
        )
    if word == "*":
        return CompiledWord(word, None, "wildcard-only ('*') words are not supported")

    expanded = _expand_wildcards(word)
    if expanded is None:
        return CompiledWord(word, None, "must not contain two consecutive '*'")

    source = (
        rf"(?P<key>( +| -{{1,2}})(?i:{expanded}))"
        r"(?P<delimiter> +|=)"
        r"(?P<value>[^\s]*)"
    )
    try:
        return CompiledWord(word, re.compile(source))
    except re.error as e:
        return CompiledWord(word, None, f"could not be compiled into a regex: {e}")


def compile_sensitive_words(words: Iterable[str]) -> list[CompiledWord]:
    """Compile sensitive words in order, keeping rejected words in the result.

    Rejections are logged as warnings and never abort the batch.
    """
    compiled = []
    for word in words:
        result = compile_sensitive_word(word)
        if not result.accepted:
            logger.warning("data scrubber: %s skipped. The sensitive word %s", word, result.reason)
        compiled.append(result)
    return compiled


def compile_sensitive_patterns(words: Iterable[str]) -> list[re.Pattern[str]]:
    """Compile sensitive words and return only the accepted matchers."""
    return [c.pattern for c in compile_sensitive_words(words) if c.pattern is not None]


class DataScrubber:
    """Hides command-line argument values whose flag matches a sensitive word.

    The matcher list is held in a tuple that is only ever replaced, never
    mutated, so ``redact`` can run concurrently with ``add_custom_words``.
    """

    enabled: bool
    strip_all_arguments: bool

    def __init__(
        self,
        enabled: bool = True,
        strip_all_arguments: bool = False,
        patterns: Sequence[re.Pattern[str]] | None = None,
    ) -> None:
        """Initialize the scrubber.

        Args:
            enabled: Whether command lines get redacted at all
            strip_all_arguments: Keep only the executable, dropping every argument
            patterns: Pre-compiled matchers, defaults to the default sensitive words
        """
        self.enabled = enabled
        self.strip_all_arguments = strip_all_arguments
        if patterns is None:
            patterns = compile_sensitive_patterns(DEFAULT_SENSITIVE_WORDS)
        self._patterns: tuple[re.Pattern[str], ...] = tuple(patterns)
        self._lock = threading.Lock()

    @property
    def sensitive_patterns(self) -> tuple[re.Pattern[str], ...]:
        return self._patterns

    def add_custom_words(self, words: Iterable[str]) -> None:
        """Compile additional sensitive words and append them to the matchers."""
        new_patterns = compile_sensitive_patterns(words)
        if not new_patterns:
            return
        with self._lock:
            self._patterns = self._patterns + tuple(new_patterns)
        logger.debug("data scrubber: added %d custom sensitive word(s)", len(new_patterns))

    def copy(self) -> "DataScrubber":
        """Return an independent scrubber with the same state."""
        return DataScrubber(
            enabled=self.enabled,
            strip_all_arguments=self.strip_all_arguments,
            patterns=self._patterns,
        )

    def redact(self, cmdline: list[str]) -> list[str]:
        """Redact sensitive values from a command line.

        Args:
            cmdline: Command-line tokens, executable first

        Returns:
            The very same list when nothing was redacted, otherwise a new list
            of tokens split on single spaces.
        """
        if not self.enabled:
            return cmdline
        if self.strip_all_arguments:
            return cmdline[:1] if cmdline else cmdline

        raw_cmdline = " ".join(cmdline)
        changed = False
        for pattern in self._patterns:
            raw_cmdline, count = pattern.subn(
                rf"\g<key>\g<delimiter>{REDACTED_VALUE}", raw_cmdline
            )
            changed = changed or count > 0

        if changed:
            return raw_cmdline.split(" ")
        return cmdline

    def __repr__(self) -> str:
        return (
            f"DataScrubber(enabled={self.enabled}, "
            f"strip_all_arguments={self.strip_all_arguments}, "
            f"patterns={len(self._patterns)})"
        )
