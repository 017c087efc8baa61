#!/usr/bin/env python3
"""Shell lexer shared by the trash-guard hooks.

This module provides the lexical layer used by both hooks:
- Quote-aware tokenizer (tokenize)
- Top-level control operator splitter (split_segments)
- Env-assignment and sudo prefix parser (parse_prefix)
- The rm flag table, read two ways:
    is_rm_flag()       structural view, used by the matcher/rewriter
    rm_flag_effects()  predicate view, used by the danger classifier

Usage:
    from _shell_lexer import tokenize, split_segments, parse_prefix, is_rm_flag

Tokens are (value, quote) tuples. value is the raw token text, surrounding
quote characters and backslashes included, so it can be re-emitted verbatim.
quote is "'", '"' or None and records the FIRST quote seen in the token, so
a mixed token like "foo"bar is tagged '"' as a whole.

Known limitation: this is not a shell parser. Subshells, heredocs, command
substitution and parameter expansion are not recognized; only the
env/sudo/xargs/find -exec idioms are.
"""

import re

# ============================================================
# Constants
# ============================================================

QUOTE_CHARS = ("'", '"')
WHITESPACE = (" ", "\t", "\n")

SUDO_FLAGS_WITH_ARG = frozenset({"-u", "-g", "-C", "-h", "-p", "-r", "-t", "-U"})
"""sudo options that consume the next token as their argument."""

SUDO_FLAGS_NO_ARG = frozenset(
    {"-A", "-b", "-E", "-e", "-H", "-i", "-K", "-k", "-l", "-n", "-P", "-S", "-s", "-V", "-v"}
)
"""sudo options that stand alone. Any other dash token is also consumed alone."""

RM_LONG_FLAGS = frozenset(
    {
        "--recursive",
        "--force",
        "--interactive",
        "--verbose",
        "--dir",
        "--one-file-system",
        "--no-preserve-root",
        "--preserve-root",
    }
)

RM_SHORT_LETTERS = "rRfivdI"

_RM_SHORT_CLUSTER = re.compile(rf"^-[{RM_SHORT_LETTERS}]+$")
_ASSIGNMENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=")

# Which flags make a delete recursive / forced (predicate view)
_RECURSIVE_LONG = frozenset({"--recursive"})
_FORCE_LONG = frozenset({"--force"})
_RECURSIVE_SHORT = ("r", "R")
_FORCE_SHORT = ("f",)


# ============================================================
# Tokenizer
# ============================================================


def tokenize(command: str) -> list[tuple[str, str | None]]:
    """Split a command into whitespace-delimited tokens, honoring quotes.

    Rules, in priority order:
    - A pending escape appends the next character literally.
    - A backslash outside single quotes starts an escape and is kept.
    - Inside quotes everything is copied until the matching quote.
    - An unquoted quote character opens a quote and is kept.
    - Unquoted whitespace ends the current token.

    Unterminated quotes and a trailing backslash are not errors: whatever
    accumulated is flushed as the last token.

    Args:
        command: The command text to tokenize.

    Returns:
        List of (value, quote) tuples in input order.
    """
    tokens: list[tuple[str, str | None]] = []
    current: list[str] = []
    quote = None
    token_quote = None
    escape = False

    for c in command:
        if escape:
            current.append(c)
            escape = False
            continue

        if c == "\\" and quote != "'":
            escape = True
            current.append(c)
            continue

        if quote:
            current.append(c)
            if c == quote:
                quote = None
            continue

        if c in QUOTE_CHARS:
            quote = c
            if token_quote is None:
                token_quote = c
            current.append(c)
            continue

        if c in WHITESPACE:
            if current:
                tokens.append(("".join(current), token_quote))
            current = []
            token_quote = None
            continue

        current.append(c)

    if current:
        tokens.append(("".join(current), token_quote))
    return tokens


def literal_value(text: str) -> str:
    """Return token text with quoting and escaping removed.

    "My Folder" -> My Folder, 'a'b -> ab, \\* -> *

    Args:
        text: Raw token text as produced by tokenize().

    Returns:
        The text the shell would pass to the program.
    """
    out: list[str] = []
    quote = None
    escape = False

    for c in text:
        if escape:
            out.append(c)
            escape = False
            continue
        if c == "\\" and quote != "'":
            escape = True
            continue
        if quote:
            if c == quote:
                quote = None
            else:
                out.append(c)
            continue
        if c in QUOTE_CHARS:
            quote = c
            continue
        out.append(c)

    return "".join(out)


# ============================================================
# Segment Splitter
# ============================================================


def _make_segment(text: str, operator: str) -> dict:
    raw = text.strip()
    return {"raw": raw, "tokens": tokenize(raw), "operator": operator}


def split_segments(command: str) -> list[dict]:
    """Split a command line at top-level control operators.

    Recognizes && and || (two characters) and ; and | (one character).
    Operators inside quotes or after a backslash are plain text.

    Each segment is a dict:
        raw:      trimmed original text of the segment
        tokens:   tokenize(raw)
        operator: the operator consumed right before this segment began
                  ("" for the first segment)

    Empty segments (leading, trailing or doubled operators) are dropped.

    Args:
        command: The full command line.

    Returns:
        List of segment dicts in input order.
    """
    segments: list[dict] = []
    current: list[str] = []
    quote = None
    escape = False
    last_op = ""
    i = 0

    while i < len(command):
        c = command[i]

        if escape:
            current.append(c)
            escape = False
            i += 1
            continue

        if c == "\\" and quote != "'":
            escape = True
            current.append(c)
            i += 1
            continue

        if quote:
            current.append(c)
            if c == quote:
                quote = None
            i += 1
            continue

        if c in QUOTE_CHARS:
            quote = c
            current.append(c)
            i += 1
            continue

        op = ""
        if command.startswith("&&", i):
            op = "&&"
        elif command.startswith("||", i):
            op = "||"
        elif c in (";", "|"):
            op = c

        if op:
            text = "".join(current)
            if text.strip():
                segments.append(_make_segment(text, last_op if segments else ""))
            current = []
            last_op = op
            i += len(op)
            continue

        current.append(c)
        i += 1

    text = "".join(current)
    if text.strip():
        segments.append(_make_segment(text, last_op if segments else ""))
    return segments


# ============================================================
# Prefix Parser
# ============================================================


def is_shell_assignment(token: str) -> bool:
    """Check if a token is a NAME=VALUE environment assignment."""
    return bool(_ASSIGNMENT.match(token))


def parse_prefix(tokens: list[tuple[str, str | None]]) -> tuple[int, str, str]:
    """Consume leading env assignments and a sudo invocation.

    FOO=1 BAR=2 sudo -u root -n rm x
    -> env prefix "FOO=1 BAR=2", sudo prefix "sudo -u root -n", index of "rm"

    Args:
        tokens: Token tuples of one segment.

    Returns:
        (index, env_prefix, sudo_prefix) where index is the first token
        not consumed as a prefix. Prefixes are space-joined token text,
        empty when absent.
    """
    i = 0
    env_parts: list[str] = []
    while i < len(tokens) and is_shell_assignment(tokens[i][0]):
        env_parts.append(tokens[i][0])
        i += 1

    sudo_parts: list[str] = []
    if i < len(tokens) and tokens[i][0] == "sudo":
        sudo_parts.append("sudo")
        i += 1
        while i < len(tokens):
            value = tokens[i][0]
            if value in SUDO_FLAGS_WITH_ARG:
                sudo_parts.append(value)
                i += 1
                if i < len(tokens):
                    sudo_parts.append(tokens[i][0])
                    i += 1
            elif value in SUDO_FLAGS_NO_ARG or value.startswith("-"):
                sudo_parts.append(value)
                i += 1
            else:
                break

    return i, " ".join(env_parts), " ".join(sudo_parts)


# ============================================================
# rm Flag Table
# ============================================================


def is_option_like(token: str) -> bool:
    """Check if a token looks like an option (dash-prefixed, not a lone dash)."""
    return token.startswith("-") and token != "-"


def is_rm_flag(token: str) -> bool:
    """Check if a token is a recognized rm option.

    Recognized: the exact long names in RM_LONG_FLAGS, or a short cluster
    made only of rRfivdI (-r, -rf, -Rfv). Anything else dash-prefixed
    (--foo, -x, -rfx) is an operand: a path misread as a flag would be
    dropped from the rewrite.

    Args:
        token: Raw token text.

    Returns:
        True if token is an rm flag.
    """
    if token in RM_LONG_FLAGS:
        return True
    if token.startswith("--"):
        return False
    return bool(_RM_SHORT_CLUSTER.match(token))


def rm_flag_effects(token: str) -> tuple[bool, bool]:
    """Return the (recursive, force) effects of an option token.

    Short clusters are read letter by letter, so -rf, -fr and -Rf all
    report both effects. Long options only count when spelled exactly.

    Args:
        token: An option-like token.

    Returns:
        (is_recursive, is_force) tuple.
    """
    if token.startswith("--"):
        return token in _RECURSIVE_LONG, token in _FORCE_LONG
    if not is_option_like(token):
        return False, False
    letters = token[1:]
    recursive = any(ch in letters for ch in _RECURSIVE_SHORT)
    force = any(ch in letters for ch in _FORCE_SHORT)
    return recursive, force
