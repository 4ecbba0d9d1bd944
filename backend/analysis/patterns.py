"""
Lexical markers for code-like text.

A large insertion that contains any of these is counted as a copy-paste
pattern: a weak signal that the text came from outside the editor.
"""

import re

CODE_KEYWORDS = ("function", "class", "import")

# identifier followed by an opening parenthesis, e.g. "foo(" or "print ("
CALL_PATTERN = re.compile(r"\w+\s*\(")


def looks_like_code(text: str) -> bool:
    if any(keyword in text for keyword in CODE_KEYWORDS):
        return True
    return CALL_PATTERN.search(text) is not None
