"""Process blacklist used by checks to skip processes entirely."""

import logging
import re
from typing import Iterable, Sequence

logger = logging.getLogger(__name__)


def compile_blacklist(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    """Compile blacklist regexes, skipping the invalid ones with a warning."""
    blacklist = []
    for pattern in patterns:
        try:
            blacklist.append(re.compile(pattern))
        except re.error as e:
            logger.warning("Invalid blacklist pattern '%s': %s", pattern, e)
    return blacklist


def is_blacklisted(cmdline: Sequence[str], blacklist: Iterable[re.Pattern[str]]) -> bool:
    """Tell whether the command line matches any blacklist pattern."""
    cmd = " ".join(cmdline)
    return any(pattern.search(cmd) for pattern in blacklist)
