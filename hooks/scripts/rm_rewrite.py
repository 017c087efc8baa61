#!/usr/bin/env python3
"""rm Rewrite Hook - redirect deletions to the trash.

Detects rm invocations in a Bash tool call and rewrites them to a
reversible trash command before execution:
1. Splitting the command line at top-level && || ; |
2. Skipping env assignments and sudo (with its options) per segment
3. Matching direct rm, `xargs rm` and `find -exec rm`
4. Rebuilding the command line with only the matched rm replaced

Everything that is not a matched rm is kept as written: unmatched
segments, quoting and spacing inside them. Operators are re-emitted with
single-space padding.

Filter mode contract: JSON in on stdin, rewritten JSON (same shape,
tool_input.command replaced) out on stdout. No match, bad input or any
error -> no output. Always exits 0.
"""

import json
import sys
from pathlib import Path

# Add hooks directory to path
sys.path.insert(0, str(Path(__file__).parent))

try:
    from _shell_lexer import is_rm_flag, parse_prefix, split_segments
    from _trash_guard_utils import (
        is_allowlisted,
        is_dry_run,
        load_trash_guard_config,
        log_trash_guard,
        truncate_command,
    )
except ImportError as e:
    # Advisory hook: a broken install lets the command through unchanged
    print(f"trash-guard unavailable: {e}", file=sys.stderr)
    sys.exit(0)


DIRECT = "direct"
XARGS = "xargs"
FIND_EXEC = "find_exec"

FIND_EXEC_FLAGS = ("-exec", "-execdir")


# ============================================================
# Matcher
# ============================================================


def _collect_targets(tokens: list[tuple[str, str | None]], start: int) -> tuple[list[str], bool]:
    """Split rm arguments into targets, dropping rm flags.

    The first bare -- ends option parsing; everything after it is a target.

    Returns:
        (targets, has_double_dash). Targets keep their original quoting.
    """
    targets: list[str] = []
    has_double_dash = False

    for value, _quote in tokens[start:]:
        if not has_double_dash and value == "--":
            has_double_dash = True
            continue
        if not has_double_dash and is_rm_flag(value):
            continue
        # Token text still carries its quote characters
        targets.append(value)

    return targets, has_double_dash


def _make_match(segment_index: int, kind: str, rm_index: int) -> dict:
    return {
        "segment_index": segment_index,
        "kind": kind,
        "rm_index": rm_index,
        "env_prefix": "",
        "sudo_prefix": "",
        "targets": [],
        "has_double_dash": False,
    }


def detect_rm_in_segment(segment: dict, segment_index: int) -> dict | None:
    """Detect an rm invocation in one segment.

    Recognized forms, after env assignments and sudo:
        rm [flags] targets...            -> kind "direct"
        xargs [flags] rm [flags] ...     -> kind "xargs"
        find ... -exec|-execdir rm ...   -> kind "find_exec"

    A direct rm with no targets is inert and does not match. xargs rm
    matches without targets because they arrive on stdin.

    Args:
        segment: Segment dict from split_segments().
        segment_index: Position of the segment in the command line.

    Returns:
        Match dict, or None if the segment does not delete.
    """
    tokens = segment["tokens"]
    if not tokens:
        return None

    i, env_prefix, sudo_prefix = parse_prefix(tokens)
    if i >= len(tokens):
        return None

    cmd = tokens[i][0]

    if cmd == "xargs":
        i += 1
        while i < len(tokens) and tokens[i][0].startswith("-"):
            i += 1
        if i >= len(tokens) or tokens[i][0] != "rm":
            return None
        match = _make_match(segment_index, XARGS, i)
        match["targets"], match["has_double_dash"] = _collect_targets(tokens, i + 1)
        return match

    if cmd == "find":
        for j in range(i + 1, len(tokens) - 1):
            if tokens[j][0] in FIND_EXEC_FLAGS and tokens[j + 1][0] == "rm":
                return _make_match(segment_index, FIND_EXEC, j + 1)
        return None

    if cmd != "rm":
        return None

    targets, has_double_dash = _collect_targets(tokens, i + 1)
    if not targets:
        return None

    match = _make_match(segment_index, DIRECT, i)
    match["env_prefix"] = env_prefix
    match["sudo_prefix"] = sudo_prefix
    match["targets"] = targets
    match["has_double_dash"] = has_double_dash
    return match


def _detect_in_segments(segments: list[dict]) -> list[dict]:
    matches = []
    for index, segment in enumerate(segments):
        match = detect_rm_in_segment(segment, index)
        if match:
            matches.append(match)
    return matches


def detect_rm(command: str) -> list[dict]:
    """Detect every rm invocation in a command line.

    Each segment is matched on its own, so `rm a && rm b` gives two
    matches. Never raises; no match is an empty list.

    Args:
        command: The full command line.

    Returns:
        List of match dicts, at most one per segment, in segment order.
    """
    return _detect_in_segments(split_segments(command))


# ============================================================
# Rewriter
# ============================================================


def _rewrite_segment(segment: dict, match: dict, trash_command: str) -> str:
    """Rebuild one matched segment with rm replaced by trash_command."""
    values = [value for value, _quote in segment["tokens"]]
    rm_index = match["rm_index"]

    if match["kind"] in (XARGS, FIND_EXEC):
        # Drop only the flags right after rm; xargs flags, later operands and
        # the find terminator are copied as written
        rest = rm_index + 1
        while rest < len(values) and is_rm_flag(values[rest]):
            rest += 1
        return " ".join(values[:rm_index] + [trash_command] + values[rest:])

    parts: list[str] = []
    if match["env_prefix"]:
        parts.append(match["env_prefix"])
    if match["sudo_prefix"]:
        parts.append(match["sudo_prefix"])

    parts.append(trash_command)
    if match["has_double_dash"]:
        parts.append("--")
    parts.extend(match["targets"])
    return " ".join(parts)


def rewrite_to_trash(command: str, trash_command: str) -> str:
    """Rewrite every rm invocation in a command line to trash_command.

    rm -rf dir && ls | xargs rm  ->  trash dir && ls | xargs trash

    Args:
        command: The full command line.
        trash_command: Replacement command, e.g. "trash" or "gio trash".

    Returns:
        The rewritten command line, or command itself when nothing matched.
    """
    segments = split_segments(command)
    matches = {m["segment_index"]: m for m in _detect_in_segments(segments)}
    if not matches:
        return command

    rewritten: list[str] = []
    for index, segment in enumerate(segments):
        match = matches.get(index)
        part = _rewrite_segment(segment, match, trash_command) if match else segment["raw"]

        if index == 0:
            rewritten.append(part)
        elif segment["operator"] == ";":
            rewritten.append(f"; {part}")
        else:
            rewritten.append(f" {segment['operator']} {part}")

    return "".join(rewritten)


# ============================================================
# Main Hook Logic
# ============================================================


def main() -> None:
    """Filter-mode hook entry point.

    Reads the hook JSON from stdin and prints the rewritten JSON when the
    command deletes something. Prints nothing otherwise.
    """
    raw_input = sys.stdin.read()
    if not raw_input.strip():
        return

    try:
        input_data = json.loads(raw_input)
    except json.JSONDecodeError as e:
        log_trash_guard("DEBUG", f"Ignoring malformed JSON input: {e}")
        return

    if not isinstance(input_data, dict):
        return
    tool_input = input_data.get("tool_input")
    if not isinstance(tool_input, dict):
        return
    command = tool_input.get("command")
    if not isinstance(command, str) or not command:
        return

    config = load_trash_guard_config()
    cmd_preview = truncate_command(command)

    if is_allowlisted(command, config["allowlist"]):
        log_trash_guard("ALLOW", f"Allowlisted: {cmd_preview}")
        return

    if not detect_rm(command):
        return

    trash_command = config["trashCommand"]
    rewritten = rewrite_to_trash(command, trash_command)
    log_trash_guard("REWRITE", f"{cmd_preview} -> {truncate_command(rewritten)}")

    if is_dry_run():
        log_trash_guard("DRY-RUN", "Would REWRITE")
        return

    print(
        f"REWRITE: Detected rm command. Rewriting to use '{trash_command}' for safer deletion.",
        file=sys.stderr,
    )
    print(f"Rewritten: {command} -> {rewritten}", file=sys.stderr)

    output = {**input_data, "tool_input": {**tool_input, "command": rewritten}}
    print(json.dumps(output))


def run() -> None:
    """Run main() and always exit 0; the hook is advisory."""
    try:
        main()
    except Exception as e:
        log_trash_guard("ERROR", f"Unhandled exception: {type(e).__name__}: {e}")
    sys.exit(0)


if __name__ == "__main__":
    run()
