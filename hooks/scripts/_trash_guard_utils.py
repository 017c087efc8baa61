#!/usr/bin/env python3
"""Trash-guard utilities shared by the hook scripts.

This module provides:
- Configuration loading (env vars > config.json > defaults)
- Platform default trash command detection
- Allow-list glob matching (regex with timeout)
- Dry-run mode support
- Logging with rotation
- Hook response helpers

Config resolution (per key, first hit wins):
    1. TRASH_GUARD_MODE / TRASH_GUARD_LEVEL / TRASH_GUARD_ALLOWLIST / TRASH_GUARD_COMMAND
    2. $CLAUDE_PROJECT_DIR/.claude/trash-guard/config.json
    3. Hardcoded defaults (_DEFAULT_CONFIG, platform trash command)

Usage:
    from _trash_guard_utils import (
        load_trash_guard_config,
        is_allowlisted,
        is_dry_run,
        log_trash_guard,
    )

Note on log_trash_guard():
    - Silent fail if CLAUDE_PROJECT_DIR not set
    - Silent fail on file write errors
    The hooks are advisory; a logging problem must never change their output.
"""

import json
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import regex

# ============================================================
# Constants
# ============================================================

DRY_RUN_ENV = "CLAUDE_HOOK_DRY_RUN"
"""Environment variable to enable dry-run mode.
Set to "1", "true", or "yes" to enable."""

ENV_MODE = "TRASH_GUARD_MODE"
ENV_LEVEL = "TRASH_GUARD_LEVEL"
ENV_ALLOWLIST = "TRASH_GUARD_ALLOWLIST"
ENV_TRASH_COMMAND = "TRASH_GUARD_COMMAND"

MAX_COMMAND_PREVIEW_LENGTH = 80
"""Maximum command length for log display. Commands longer than this are truncated."""

MAX_LOG_SIZE_BYTES = 1_000_000
"""Maximum log file size before rotation (1 MB)."""

REGEX_TIMEOUT_SECONDS = 0.5
"""Timeout for allow-list pattern matching (user-supplied patterns)."""

VALID_MODES = ("deny", "rewrite")
VALID_LEVELS = ("normal", "strict")
VALID_HOOK_ACTIONS = ("allow", "ask", "deny")

PLATFORM_TRASH_COMMANDS = {
    "darwin": "trash",  # /usr/bin/trash on macOS 15+, `brew install trash` before
    "linux": "gio trash",  # Pre-installed on most Linux desktops
}
DEFAULT_TRASH_COMMAND = "trash"

_DEFAULT_CONFIG = {
    "mode": "rewrite",
    "level": "strict",
    "allowlist": [],
    "hookBehavior": {"onError": "allow"},
}

# ============================================================
# Configuration
# ============================================================

_config_cache: dict | None = None


def get_project_dir() -> str:
    """Get project directory from environment variable.

    Returns:
        Project directory path, or empty string if not set or not a directory.
    """
    project_dir = os.environ.get("CLAUDE_PROJECT_DIR", "")
    if not project_dir:
        return ""
    # Note: no logging here, log_trash_guard() calls this function
    if not os.path.isdir(project_dir):
        return ""
    return project_dir


def get_config_path() -> Path | None:
    """Get the path of the per-project config file, if a project dir is set."""
    project_dir = get_project_dir()
    if not project_dir:
        return None
    return Path(project_dir) / ".claude" / "trash-guard" / "config.json"


def detect_trash_command(platform: str | None = None, environ=None) -> str:
    """Pick the trash command for this machine.

    TRASH_GUARD_COMMAND wins. Otherwise macOS uses `trash`, Linux uses
    `gio trash`, and any other platform falls back to `trash`.

    Args:
        platform: sys.platform value (default: current platform).
        environ: Environment mapping (default: os.environ).

    Returns:
        The trash command string.
    """
    environ = os.environ if environ is None else environ
    override = environ.get(ENV_TRASH_COMMAND, "").strip()
    if override:
        return override
    platform = sys.platform if platform is None else platform
    return PLATFORM_TRASH_COMMANDS.get(platform, DEFAULT_TRASH_COMMAND)


def parse_mode(value) -> str:
    """Anything but "deny" means rewrite."""
    return "deny" if value == "deny" else "rewrite"


def parse_level(value) -> str:
    """Anything but "normal" means strict."""
    return "normal" if value == "normal" else "strict"


def parse_allowlist(value) -> list[str]:
    """Parse an allow-list from a comma-separated string or a list.

    Items are trimmed; empty items and non-strings are dropped.
    """
    if not value:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, list):
        items = [item for item in value if isinstance(item, str)]
    else:
        return []
    return [item.strip() for item in items if item.strip()]


def validate_trash_guard_config(config: dict) -> list[str]:
    """Validate a trash-guard config dict (as read from config.json).

    Args:
        config: Loaded configuration dictionary.

    Returns:
        List of validation error messages (empty if valid).
    """
    errors = []

    mode = config.get("mode")
    if mode is not None and mode not in VALID_MODES:
        errors.append(f"Invalid mode: {mode} (must be one of {VALID_MODES})")

    level = config.get("level")
    if level is not None and level not in VALID_LEVELS:
        errors.append(f"Invalid level: {level} (must be one of {VALID_LEVELS})")

    allowlist = config.get("allowlist")
    if allowlist is not None:
        if isinstance(allowlist, list):
            for i, pattern in enumerate(allowlist):
                if not isinstance(pattern, str):
                    type_name = type(pattern).__name__
                    errors.append(f"allowlist[{i}] must be a string, got {type_name}")
        elif not isinstance(allowlist, str):
            errors.append("allowlist must be a list or a comma-separated string")

    trash_command = config.get("trashCommand")
    if trash_command is not None:
        if not isinstance(trash_command, str) or not trash_command.strip():
            errors.append("trashCommand must be a non-empty string")

    hook_behavior = config.get("hookBehavior", {})
    if not isinstance(hook_behavior, dict):
        errors.append("hookBehavior must be an object")
    else:
        on_error = hook_behavior.get("onError", "allow")
        if on_error not in VALID_HOOK_ACTIONS:
            errors.append(
                f"Invalid hookBehavior.onError: {on_error} (must be one of {VALID_HOOK_ACTIONS})"
            )

    return errors


def _read_config_file() -> dict[str, Any]:
    """Read config.json from the project, or {} if absent or unusable."""
    config_path = get_config_path()
    if config_path is None or not config_path.exists():
        return {}
    try:
        with open(config_path, encoding="utf-8") as f:
            file_config = json.load(f)
    except json.JSONDecodeError as e:
        log_trash_guard("ERROR", f"Invalid JSON in {config_path}: {e}\n  Using defaults.")
        return {}
    except OSError as e:
        log_trash_guard("ERROR", f"Failed to read {config_path}: {e}\n  Check file permissions.")
        return {}

    if not isinstance(file_config, dict):
        log_trash_guard("ERROR", f"{config_path} must contain a JSON object, using defaults")
        return {}

    for error in validate_trash_guard_config(file_config):
        log_trash_guard("WARN", f"Config validation: {error}")
    log_trash_guard("INFO", f"Loaded config from {config_path}")
    return file_config


def build_trash_guard_config(
    environ=None, file_config: dict | None = None, platform: str | None = None
) -> dict[str, Any]:
    """Build a config dict from environment values and file values.

    Pure: reads nothing but its arguments, so callers can construct a
    config once and pass it around.

    Args:
        environ: Environment mapping (default: os.environ).
        file_config: Parsed config.json contents (default: none).
        platform: sys.platform value for the default trash command.

    Returns:
        Config dict with keys mode, level, allowlist, trashCommand, hookBehavior.
    """
    environ = os.environ if environ is None else environ
    file_config = file_config or {}

    def pick(env_var: str, key: str):
        value = environ.get(env_var)
        if value:
            return value
        return file_config.get(key, _DEFAULT_CONFIG.get(key))

    trash_command = environ.get(ENV_TRASH_COMMAND, "").strip()
    if not trash_command:
        file_command = file_config.get("trashCommand")
        if isinstance(file_command, str) and file_command.strip():
            trash_command = file_command.strip()
        else:
            trash_command = detect_trash_command(platform, environ)

    hook_behavior = dict(_DEFAULT_CONFIG["hookBehavior"])
    file_behavior = file_config.get("hookBehavior")
    if isinstance(file_behavior, dict):
        hook_behavior.update(file_behavior)
    if hook_behavior.get("onError") not in VALID_HOOK_ACTIONS:
        hook_behavior["onError"] = _DEFAULT_CONFIG["hookBehavior"]["onError"]

    return {
        "mode": parse_mode(pick(ENV_MODE, "mode")),
        "level": parse_level(pick(ENV_LEVEL, "level")),
        "allowlist": parse_allowlist(pick(ENV_ALLOWLIST, "allowlist")),
        "trashCommand": trash_command,
        "hookBehavior": hook_behavior,
    }


def load_trash_guard_config() -> dict[str, Any]:
    """Load the trash-guard config with caching.

    The config is cached for the lifetime of the process.
    Since hooks run as separate processes, this is safe.

    Returns:
        Config dict (see build_trash_guard_config). Never raises.
    """
    global _config_cache
    if _config_cache is not None:
        return _config_cache
    _config_cache = build_trash_guard_config(os.environ, _read_config_file())
    return _config_cache


# ============================================================
# Allow-list
# ============================================================


def glob_to_pattern(glob: str) -> str:
    """Translate an allow-list glob to an anchored regex.

    * matches any run of characters, ? matches one character.
    Everything else, including [ and ], is literal.
    """
    parts = []
    for c in glob:
        if c == "*":
            parts.append(".*")
        elif c == "?":
            parts.append(".")
        else:
            parts.append(regex.escape(c))
    return "^" + "".join(parts) + "$"


def is_allowlisted(command: str, allowlist: list[str]) -> bool:
    """Check if a whole command string matches any allow-list glob.

    Patterns that fail to compile or time out are skipped.

    Args:
        command: The full command string.
        allowlist: Glob patterns.

    Returns:
        True if any pattern matches the entire command.
    """
    for pattern in allowlist:
        try:
            if regex.fullmatch(
                glob_to_pattern(pattern),
                command,
                flags=regex.DOTALL,
                timeout=REGEX_TIMEOUT_SECONDS,
            ):
                return True
        except regex.error as e:
            log_trash_guard("WARN", f"Invalid allowlist pattern {pattern!r}: {e}")
        except TimeoutError:
            log_trash_guard("WARN", f"Allowlist pattern timed out: {pattern!r}")
    return False


# ============================================================
# Dry-Run Mode
# ============================================================


def is_dry_run() -> bool:
    """Check if running in dry-run (simulation) mode.

    In dry-run mode, hooks log what they WOULD do but print nothing.

    Enable by setting environment variable:
        CLAUDE_HOOK_DRY_RUN=1
    """
    value = os.environ.get(DRY_RUN_ENV, "").lower()
    return value in ("1", "true", "yes")


# ============================================================
# Logging with Rotation
# ============================================================


def _rotate_log_if_needed(log_file: Path) -> None:
    """Rotate log file to .log.1 if it exceeds MAX_LOG_SIZE_BYTES.

    Keeps exactly one backup. Silent fail on any error.
    """
    try:
        if not log_file.exists():
            return
        if log_file.stat().st_size < MAX_LOG_SIZE_BYTES:
            return

        backup_file = log_file.with_suffix(".log.1")
        # On Windows, the target must not exist
        if backup_file.exists():
            backup_file.unlink()
        log_file.rename(backup_file)
    except Exception:
        # Silent fail - rotation is non-critical
        pass


def get_log_file_path() -> Path | None:
    """Get the trash-guard log path, or None without a project dir."""
    project_dir = get_project_dir()
    if not project_dir:
        return None
    return Path(project_dir) / ".claude" / "trash-guard" / "trash-guard.log"


def log_trash_guard(level: str, message: str) -> None:
    """Log a trash-guard event to trash-guard.log.

    Log format:
        TIMESTAMP [LEVEL] [DRY-RUN] MESSAGE

    Args:
        level: Log level (INFO, WARN, ERROR, REWRITE, BLOCK, ALLOW, DRY-RUN)
        message: Message to log.
    """
    log_file = get_log_file_path()
    if log_file is None:
        return

    try:
        timestamp = datetime.now().isoformat(timespec="seconds")
        mode = "[DRY-RUN] " if is_dry_run() else ""
        line = f"{timestamp} [{level}] {mode}{message}\n"

        log_file.parent.mkdir(parents=True, exist_ok=True)
        _rotate_log_if_needed(log_file)

        with open(log_file, "a", encoding="utf-8") as f:
            f.write(line)
    except Exception:
        # Silent fail - don't break hook on log error
        pass


def truncate_command(command: str, max_length: int = MAX_COMMAND_PREVIEW_LENGTH) -> str:
    """Truncate command for display in logs, keeping the start."""
    if len(command) <= max_length:
        return command
    return f"{command[: max_length - 3]}..."


# ============================================================
# Hook Response Helpers
# ============================================================


def deny_response(reason: str) -> dict[str, Any]:
    """Generate a deny response for PreToolUse hook.

    Args:
        reason: Human-readable reason for denial.

    Returns:
        Hook response dict that will block the operation.
    """
    # Text prefix instead of emoji for Windows cp949 compatibility
    return {
        "hookSpecificOutput": {
            "hookEventName": "PreToolUse",
            "permissionDecision": "deny",
            "permissionDecisionReason": f"[BLOCKED] {reason}",
        }
    }


def ask_response(reason: str) -> dict[str, Any]:
    """Generate an ask response for PreToolUse hook."""
    return {
        "hookSpecificOutput": {
            "hookEventName": "PreToolUse",
            "permissionDecision": "ask",
            "permissionDecisionReason": f"[CONFIRM] {reason}",
        }
    }


def rewrite_response(updated_input: dict[str, Any], reason: str) -> dict[str, Any]:
    """Generate an allow response that replaces the tool input.

    Args:
        updated_input: The full tool_input to run instead.
        reason: Human-readable explanation shown with the decision.

    Returns:
        Hook response dict carrying updatedInput.
    """
    return {
        "hookSpecificOutput": {
            "hookEventName": "PreToolUse",
            "permissionDecision": "allow",
            "permissionDecisionReason": f"[REWRITTEN] {reason}",
            "updatedInput": updated_input,
        }
    }


def make_hook_behavior_response(action: str, reason: str) -> dict[str, Any] | None:
    """Create a hook response from a hookBehavior action string.

    Args:
        action: One of "allow", "ask" or "deny".
        reason: Human-readable reason for the action.

    Returns:
        Response dict for "ask" or "deny", None for "allow"
        (no output = allow in the Claude Code hook protocol).
        Unrecognized actions also return None: trash-guard is advisory.
    """
    if action == "deny":
        return deny_response(reason)
    if action == "ask":
        return ask_response(reason)
    return None
