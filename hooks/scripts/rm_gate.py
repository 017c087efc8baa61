#!/usr/bin/env python3
"""rm Gate Hook - block or rewrite dangerous deletes.

Policy-only counterpart of rm_rewrite.py. Decides whether a command is a
dangerous rm under a strictness level, then depending on the configured
mode either denies it or rewrites it to the trash command.

Levels:
    normal  block rm that is both recursive and forced (rm -rf)
    strict  block any recursive rm, or any rm with a wildcard operand

Only the first command word is evaluated; compound commands are not split
here. rm -rf with no operands still counts as a recursive forced delete.

Two integration shapes share the policy:
- permission_ask() / tool_execute_before(): callbacks invoked by a host
  runtime with mutable output dicts
- main(): a Claude Code PreToolUse hook reading JSON on stdin
"""

import json
import sys
from pathlib import Path

# Add hooks directory to path
sys.path.insert(0, str(Path(__file__).parent))

try:
    from _shell_lexer import (
        is_option_like,
        literal_value,
        parse_prefix,
        rm_flag_effects,
        tokenize,
    )
    from _trash_guard_utils import (
        deny_response,
        is_allowlisted,
        is_dry_run,
        load_trash_guard_config,
        log_trash_guard,
        make_hook_behavior_response,
        rewrite_response,
        truncate_command,
    )
    from rm_rewrite import rewrite_to_trash
except ImportError as e:
    # Advisory hook: a broken install lets the command through unchanged
    print(f"trash-guard unavailable: {e}", file=sys.stderr)
    sys.exit(0)


WILDCARD_CHARS = ("*", "?", "[")

_NOT_BLOCKED = {"blocked": False}


class CommandBlockedError(Exception):
    """A dangerous delete was refused in deny mode."""

    def __init__(self, command: str, reason: str, suggestion: str):
        self.command = command
        self.reason = reason
        self.suggestion = suggestion
        super().__init__(
            f"[trash-guard] Blocked dangerous command: {command}\n"
            f"Reason: {reason}\n"
            f"Suggestion: {suggestion}"
        )


# ============================================================
# Danger Classifier
# ============================================================


def is_wildcard_operand(token: str) -> bool:
    """Check if an operand contains a glob character once unquoted."""
    value = literal_value(token)
    return any(c in value for c in WILDCARD_CHARS)


def classify_rm(command: str) -> dict | None:
    """Compute the risk predicates of an rm command.

    Args:
        command: The full command string.

    Returns:
        Dict with has_recursive, has_force, has_wildcard and operand_count,
        or None if the first command word is not rm.
    """
    tokens = tokenize(command.strip())
    if not tokens:
        return None

    i, _env_prefix, _sudo_prefix = parse_prefix(tokens)
    if i >= len(tokens) or tokens[i][0] != "rm":
        return None

    result = {
        "has_recursive": False,
        "has_force": False,
        "has_wildcard": False,
        "operand_count": 0,
    }
    options_done = False

    for value, _quote in tokens[i + 1 :]:
        if not options_done:
            if value == "--":
                options_done = True
                continue
            if is_option_like(value):
                recursive, force = rm_flag_effects(value)
                if recursive:
                    result["has_recursive"] = True
                if force:
                    result["has_force"] = True
                continue

        result["operand_count"] += 1
        if is_wildcard_operand(value):
            result["has_wildcard"] = True

    return result


def is_dangerous_delete(command: str, level: str) -> dict:
    """Decide whether a command is a dangerous delete under a level.

    Args:
        command: The full command string.
        level: "normal" or "strict". Anything else is treated as strict.

    Returns:
        {"blocked": False} or
        {"blocked": True, "reason": ..., "suggestion": ...}
    """
    risk = classify_rm(command)
    if risk is None:
        return dict(_NOT_BLOCKED)

    if level == "normal":
        if risk["has_recursive"] and risk["has_force"]:
            return {
                "blocked": True,
                "reason": "Detected a force+recursive delete (rm -rf)",
                "suggestion": "Use a trash command instead of rm -rf",
            }
        return dict(_NOT_BLOCKED)

    if risk["has_recursive"]:
        return {
            "blocked": True,
            "reason": "Detected a recursive delete (rm -r)",
            "suggestion": "Use a trash command instead of rm -r",
        }

    # rm -f with a wildcard lands here too
    if risk["has_wildcard"]:
        return {
            "blocked": True,
            "reason": "Detected a wildcard delete (rm *)",
            "suggestion": "Use a trash command or be explicit about files",
        }

    return dict(_NOT_BLOCKED)


# ============================================================
# Gate Callbacks
# ============================================================


def build_rewrite_notice(command: str, rewritten: str, trash_command: str) -> str:
    return (
        f"[trash-guard] Rewrote '{command}' to '{rewritten}'. "
        f"Please use '{trash_command} <path>' instead of 'rm -rf' for safe deletion."
    )


def permission_ask(input_data: dict, output: dict, config: dict) -> None:
    """Permission callback: mark a dangerous bash command as denied.

    Only acts in deny mode. Sets output["status"] = "deny" when blocked.

    Args:
        input_data: {"type": "bash", "metadata": {"command": ...}}
        output: Mutable host output dict.
        config: Config dict from load_trash_guard_config().
    """
    if config["mode"] != "deny":
        return
    if input_data.get("type") != "bash":
        return
    metadata = input_data.get("metadata") or {}
    command = metadata.get("command")
    if not command or not isinstance(command, str):
        return

    if is_allowlisted(command, config["allowlist"]):
        return

    result = is_dangerous_delete(command, config["level"])
    if not result["blocked"]:
        return

    log_trash_guard("BLOCK", f"{result['reason']}: {truncate_command(command)}")
    output["status"] = "deny"


def tool_execute_before(input_data: dict, output: dict, config: dict) -> None:
    """Pre-execution callback: refuse or rewrite a dangerous bash command.

    Deny mode raises CommandBlockedError. Rewrite mode replaces
    output["args"]["command"] with a notice echo followed by the
    rewritten command.

    Args:
        input_data: {"tool": "bash", ...}
        output: Mutable host output dict holding "args".
        config: Config dict from load_trash_guard_config().

    Raises:
        CommandBlockedError: Dangerous command in deny mode.
    """
    if input_data.get("tool") != "bash":
        return
    args = output.get("args")
    if not isinstance(args, dict):
        return
    command = args.get("command")
    if not command or not isinstance(command, str):
        return

    if is_allowlisted(command, config["allowlist"]):
        return

    result = is_dangerous_delete(command, config["level"])
    if not result["blocked"]:
        return

    trash_command = config["trashCommand"]
    cmd_preview = truncate_command(command)

    if config["mode"] == "deny":
        log_trash_guard("BLOCK", f"{result['reason']}: {cmd_preview}")
        suggestion = result.get("suggestion") or f"Use '{trash_command}' instead of 'rm -rf'"
        raise CommandBlockedError(command, result["reason"], suggestion)

    rewritten = rewrite_to_trash(command, trash_command)
    if rewritten == command:
        return

    log_trash_guard("REWRITE", f"{cmd_preview} -> {truncate_command(rewritten)}")
    notice = build_rewrite_notice(command, rewritten, trash_command)
    args["command"] = f"echo {json.dumps(notice)} && {rewritten}"


# ============================================================
# Main Hook Logic
# ============================================================


def main() -> None:
    """PreToolUse hook entry point.

    Deny mode prints a deny response for dangerous deletes. Rewrite mode
    prints an allow response whose updatedInput carries the rewritten
    command. Safe or unparseable input prints nothing.
    """
    raw_input = sys.stdin.read()
    if not raw_input.strip():
        return

    try:
        input_data = json.loads(raw_input)
    except json.JSONDecodeError as e:
        log_trash_guard("DEBUG", f"Ignoring malformed JSON input: {e}")
        return

    if not isinstance(input_data, dict) or input_data.get("tool_name") != "Bash":
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

    result = is_dangerous_delete(command, config["level"])
    if not result["blocked"]:
        return

    trash_command = config["trashCommand"]
    rewritten = rewrite_to_trash(command, trash_command)

    if config["mode"] == "deny" or rewritten == command:
        log_trash_guard("BLOCK", f"{result['reason']}: {cmd_preview}")
        if is_dry_run():
            log_trash_guard("DRY-RUN", "Would DENY")
            return
        print(json.dumps(deny_response(f"{result['reason']}. {result['suggestion']}")))
        return

    log_trash_guard("REWRITE", f"{cmd_preview} -> {truncate_command(rewritten)}")
    if is_dry_run():
        log_trash_guard("DRY-RUN", "Would REWRITE")
        return
    reason = f"{result['reason']}; running '{rewritten}' instead"
    print(json.dumps(rewrite_response({**tool_input, "command": rewritten}, reason)))


def run() -> None:
    """Run main(); unexpected errors follow hookBehavior.onError."""
    try:
        main()
    except Exception as e:
        log_trash_guard("ERROR", f"Unhandled exception: {type(e).__name__}: {e}")
        try:
            action = load_trash_guard_config()["hookBehavior"]["onError"]
            response = make_hook_behavior_response(
                action, f"trash-guard error: {type(e).__name__}"
            )
            if response is not None:
                print(json.dumps(response))
        except Exception:
            # Advisory hook: no output means the command proceeds
            pass
    sys.exit(0)


if __name__ == "__main__":
    run()
