"""
Command tokenizer.

Splits a command line into an argv array. Double-quoted spans become a single
token with the quotes stripped; every other run of non-whitespace, non-quote
characters becomes its own token. Escaped quotes, nested quoting and single
quotes are not supported.
"""

import re
from typing import List


TOKEN_PATTERN = re.compile(r'[^\s"]+|"([^"]*)"')


def tokenize(command: str) -> List[str]:
    """
    Split a command string into argument tokens.

    Args:
        command: Command line, e.g. 'echo "hello world" foo'

    Returns:
        List of tokens; empty for empty or all-whitespace input
    """
    tokens = []
    for match in TOKEN_PATTERN.finditer(command):
        # An empty quoted span has no interior, so the raw match is kept
        quoted = match.group(1)
        tokens.append(quoted if quoted else match.group(0))
    return tokens
