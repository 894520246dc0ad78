import logging
import os
import re
from typing_extensions import *

from grammar import Grammar, GrammarError

logger = logging.getLogger(__name__)

KEYWORDS = {"PRODUCTIONS", "NONTERMINALS", "NON_TERMINALS", "TERMINALS", "START"}


def load_from_file(filename: str) -> Dict[str, Grammar]:
    """
    Load grammars from a file.

    A file either holds a single grammar, named after the file, or several
    sections introduced by a line of the form ``NAME:``. Sections that do
    not parse are skipped with a warning.
    """
    with open(filename, "r", encoding="utf-8") as f:
        content = f.read()

    return load_from_string(content, os.path.basename(filename).rsplit(".", 1)[0])


def load_from_string(content: str, base_name: str = "grammar") -> Dict[str, Grammar]:
    grammars: Dict[str, Grammar] = {}

    name_pattern = re.compile(r"^([A-Za-z]\w*):\s*$", re.MULTILINE)
    names = [m for m in name_pattern.finditer(content) if m.group(1) not in KEYWORDS]

    if not names:
        grammars[base_name] = Grammar.from_string(content)
        return grammars

    # Named sections: NAME:\n...definition...
    bounds = [m.start() for m in names[1:]] + [len(content)]
    for match, end in zip(names, bounds):
        name = match.group(1)
        definition = content[match.end() : end].strip()

        if not definition:
            continue

        try:
            grammars[name] = Grammar.from_string(definition)
        except GrammarError as e:
            logger.warning("Failed to load grammar '%s': %s", name, e)

    return grammars
