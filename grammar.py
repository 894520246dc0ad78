import logging
from dataclasses import dataclass
from typing_extensions import *

logger = logging.getLogger(__name__)

RESERVED_CHARACTERS = (",", "-", ">")


class GrammarError(ValueError):
    """Base class for all grammar related errors."""


class InvalidProduction(GrammarError):
    pass


class InvalidGrammar(GrammarError):
    pass


class NotContextSensitive(GrammarError):
    pass


class NotKurodaNormalForm(GrammarError):
    pass


@dataclass(frozen=True)
class Production:
    left: Tuple[str, ...]
    right: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "left", tuple(self.left))
        object.__setattr__(self, "right", tuple(self.right))
        if not self.left or not self.right:
            raise InvalidProduction(
                f"Production sides must not be empty: {list(self.left)} -> {list(self.right)}"
            )

    def __str__(self):
        return " ".join(self.left) + " -> " + " ".join(self.right)

    def symbols(self) -> Tuple[str, ...]:
        return self.left + self.right

    def replace(self, old: str, new: str) -> "Production":
        return Production(
            tuple(new if s == old else s for s in self.left),
            tuple(new if s == old else s for s in self.right),
        )


@dataclass(frozen=True)
class Grammar:
    """
    Immutable grammar value.

    N and Sigma keep the declaration order, since normalization walks the
    terminals in that order and appends fresh nonterminals to N.
    """

    N: Tuple[str, ...]  # Non-terminals
    Sigma: Tuple[str, ...]  # Terminals
    P: Tuple[Production, ...]  # Productions
    S: str  # Start symbol

    def __post_init__(self):
        object.__setattr__(self, "N", tuple(dict.fromkeys(self.N)))
        object.__setattr__(self, "Sigma", tuple(dict.fromkeys(self.Sigma)))
        object.__setattr__(self, "P", tuple(dict.fromkeys(self.P)))

        if self.S not in self.N:
            raise InvalidGrammar(f"Start symbol '{self.S}' is not a non-terminal")
        overlap = set(self.N) & set(self.Sigma)
        if overlap:
            raise InvalidGrammar(
                f"Symbols are both terminal and non-terminal: {', '.join(sorted(overlap))}"
            )
        declared = set(self.N) | set(self.Sigma)
        undeclared = [
            s for p in self.P for s in p.symbols() if s not in declared
        ]
        if undeclared:
            raise InvalidGrammar(
                f"Undeclared symbols: {', '.join(dict.fromkeys(undeclared))}"
            )

    # ------------------------------------------------------------------ #
    # Introspection / pretty-printing
    # ------------------------------------------------------------------ #

    @property
    def symbols(self) -> Tuple[str, ...]:
        return self.Sigma + self.N

    def __str__(self):
        result = f"  Non-terminals: {{{', '.join(self.N)}}}\n"
        result += f"  Terminals: {{{', '.join(self.Sigma)}}}\n"
        result += f"  Start symbol: {self.S}\n"
        result += "  Productions:\n"

        prod_dict: Dict[Tuple[str, ...], List[str]] = {}
        for production in self.P:
            prod_dict.setdefault(production.left, []).append(" ".join(production.right))

        for lhs, alternatives in prod_dict.items():
            result += f"    {' '.join(lhs)} -> {' | '.join(alternatives)}\n"

        return result

    def copy(self) -> "Grammar":
        return Grammar(self.N, self.Sigma, self.P, self.S)

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #

    def is_context_sensitive(self) -> bool:
        return all(len(p.left) <= len(p.right) for p in self.P)

    def is_kuroda(self) -> bool:
        """
        Check that every production has one of the Kuroda shapes:
          A -> a     (A non-terminal, a any grammar symbol)
          A -> B C
          A B -> C D
        A symbol only counts as non-terminal if the grammar declares it.
        """
        nonterminals = set(self.N)
        declared = nonterminals | set(self.Sigma)

        for p in self.P:
            left_ok = all(s in nonterminals for s in p.left)
            if len(p.left) == 1 and len(p.right) == 1:
                if left_ok and p.right[0] in declared:
                    continue
            elif len(p.left) in (1, 2) and len(p.right) == 2:
                if left_ok and all(s in nonterminals for s in p.right):
                    continue
            return False
        return True

    # ------------------------------------------------------------------ #
    # Parsing from file / string
    # ------------------------------------------------------------------ #

    @classmethod
    def from_file(cls, filename: str) -> "Grammar":
        with open(filename, "r", encoding="utf-8") as f:
            content = f.read()
        return cls.from_string(content)

    @classmethod
    def from_string(cls, content: str) -> "Grammar":
        lines = content.strip().split("\n")

        nonterminals: Optional[List[str]] = None
        terminals: Optional[List[str]] = None
        specified_start = None
        productions: List[Tuple[str, str]] = []

        # First pass: collect declarations and raw productions
        for line in lines:
            if "#" in line:
                line = line[: line.index("#")]
            line = line.strip()

            if not line or line == "PRODUCTIONS:":
                continue

            if line.startswith("NONTERMINALS:") or line.startswith("NON_TERMINALS:"):
                nonterminals = _split_symbol_list(line.split(":", 1)[1])
                continue

            if line.startswith("TERMINALS:"):
                terminals = _split_symbol_list(line.split(":", 1)[1])
                continue

            if line.startswith("START:"):
                specified_start = line.split(":", 1)[1].strip()
                continue

            line = line.replace("→", "->")
            # Several productions may share a line, separated by commas
            for part in line.split(","):
                part = part.strip()
                if not part:
                    continue
                if part.count("->") != 1:
                    raise InvalidGrammar(f"Cannot parse production '{part}'")
                lhs, rhs = (side.strip() for side in part.split("->"))
                for alternative in rhs.split("|"):
                    productions.append((lhs, alternative.strip()))

        if not productions:
            raise InvalidGrammar("No productions found")

        # Second pass: tokenize against the declared symbols
        declared = (nonterminals or []) + (terminals or [])
        closed = nonterminals is not None and terminals is not None
        parsed = [
            Production(_tokenize(lhs, declared, closed), _tokenize(rhs, declared, closed))
            for lhs, rhs in productions
        ]

        used: List[str] = []
        for production in parsed:
            for symbol in production.symbols():
                if symbol not in used:
                    used.append(symbol)

        if nonterminals is None:
            nonterminals = [s for s in used if s[:1].isupper()]
        if terminals is None:
            terminals = [s for s in used if s not in nonterminals]

        for symbol in nonterminals + terminals:
            if any(c in symbol for c in RESERVED_CHARACTERS):
                raise InvalidGrammar(f"Symbol '{symbol}' contains a reserved character")

        # Determine start symbol
        if specified_start:
            start_symbol = specified_start
        elif "S" in nonterminals:
            start_symbol = "S"
        else:
            start_symbol = parsed[0].left[0]

        g = cls(tuple(nonterminals), tuple(terminals), tuple(parsed), start_symbol)
        logger.debug("Parsed grammar with %d productions", len(g.P))
        return g


def _split_symbol_list(text: str) -> List[str]:
    return [s for s in text.replace(",", " ").split() if s]


def _tokenize(side: str, declared: List[str], closed: bool = True) -> Tuple[str, ...]:
    """Split a production side into symbols.

    Whitespace separates symbols. A side without whitespace is split by
    longest match against the declared symbols. Unless both symbol lists
    were declared (closed), characters matching no declared symbol become
    single-character symbols.
    """
    if any(c.isspace() for c in side):
        return tuple(side.split())

    by_length = sorted(declared, key=len, reverse=True)
    tokens: List[str] = []
    i = 0
    while i < len(side):
        for symbol in by_length:
            if side.startswith(symbol, i):
                tokens.append(symbol)
                i += len(symbol)
                break
        else:
            if closed:
                raise InvalidGrammar(f"Cannot split '{side}' into declared symbols")
            tokens.append(side[i])
            i += 1
    return tuple(tokens)


def is_context_sensitive(grammar: Grammar) -> bool:
    return grammar.is_context_sensitive()


def is_kuroda(grammar: Grammar) -> bool:
    return grammar.is_kuroda()
