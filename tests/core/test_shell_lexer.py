#!/usr/bin/env python3
"""Tests for the shared shell lexer.

Covers: tokenize() quoting/escaping rules, split_segments() operator
handling, parse_prefix() env/sudo grammar, and both views of the rm flag
table (is_rm_flag / rm_flag_effects).
"""
import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))
import _bootstrap  # noqa: F401, E402

from _shell_lexer import (
    is_option_like,
    is_rm_flag,
    is_shell_assignment,
    literal_value,
    parse_prefix,
    rm_flag_effects,
    split_segments,
    tokenize,
)


def values(tokens):
    return [value for value, _quote in tokens]


# ============================================================
# 1. Tokenizer
# ============================================================

class TestTokenize(unittest.TestCase):
    """Test tokenize() quoting, escaping and whitespace rules."""

    def test_empty_string(self):
        self.assertEqual(tokenize(""), [])

    def test_whitespace_only(self):
        self.assertEqual(tokenize(" \t\n "), [])

    def test_plain_words(self):
        self.assertEqual(tokenize("rm -rf dir"), [("rm", None), ("-rf", None), ("dir", None)])

    def test_collapses_repeated_whitespace(self):
        self.assertEqual(values(tokenize("rm   a\tb\nc")), ["rm", "a", "b", "c"])

    def test_double_quoted_token_keeps_quotes(self):
        """Quote characters stay in the token text so rewrites reproduce them."""
        self.assertEqual(tokenize('rm "my file"'), [("rm", None), ('"my file"', '"')])

    def test_single_quoted_token_keeps_quotes(self):
        self.assertEqual(tokenize("rm 'my file'"), [("rm", None), ("'my file'", "'")])

    def test_other_quote_inside_quotes_is_literal(self):
        self.assertEqual(tokenize("""echo "it's" 'say "hi"'"""),
                         [("echo", None), ('"it\'s"', '"'), ("'say \"hi\"'", "'")])

    def test_backslash_escapes_space_and_is_kept(self):
        self.assertEqual(tokenize(r"rm my\ file"), [("rm", None), (r"my\ file", None)])

    def test_backslash_escapes_quote(self):
        """An escaped quote does not open a quoted region."""
        self.assertEqual(tokenize(r"echo \"a b"), [("echo", None), (r"\"a", None), ("b", None)])

    def test_backslash_inside_single_quotes_is_literal(self):
        self.assertEqual(tokenize(r"echo 'a\' b"), [("echo", None), (r"'a\'", "'"), ("b", None)])

    def test_escaped_quote_inside_double_quotes(self):
        self.assertEqual(values(tokenize(r'echo "a\"b c"')), ["echo", r'"a\"b c"'])

    def test_mixed_token_records_first_quote(self):
        """"foo"bar is one token tagged with the first quote seen."""
        self.assertEqual(tokenize('"foo"bar'), [('"foo"bar', '"')])
        self.assertEqual(tokenize("'a'\"b\""), [("'a'\"b\"", "'")])

    def test_unquoted_prefix_then_quote(self):
        self.assertEqual(tokenize('a"b c"'), [('a"b c"', '"')])

    def test_unterminated_quote_flushes(self):
        self.assertEqual(tokenize('rm "unterminated file'), [("rm", None), ('"unterminated file', '"')])

    def test_trailing_backslash_flushes(self):
        self.assertEqual(values(tokenize("rm file\\")), ["rm", "file\\"])

    def test_very_long_input(self):
        """Very long input (10K+ chars) should not crash or hang."""
        tokens = tokenize("echo " + "a" * 10000)
        self.assertEqual(len(tokens), 2)


class TestLiteralValue(unittest.TestCase):
    """Test literal_value() quote and escape removal."""

    def test_plain(self):
        self.assertEqual(literal_value("foo"), "foo")

    def test_double_quotes(self):
        self.assertEqual(literal_value('"My Folder"'), "My Folder")

    def test_single_quotes(self):
        self.assertEqual(literal_value("'*.log'"), "*.log")

    def test_mixed(self):
        self.assertEqual(literal_value("'a'\"b\"c"), "abc")

    def test_escape(self):
        self.assertEqual(literal_value(r"\*"), "*")

    def test_backslash_in_single_quotes_kept(self):
        self.assertEqual(literal_value(r"'a\b'"), r"a\b")


# ============================================================
# 2. Segment Splitter
# ============================================================

class TestSplitSegments(unittest.TestCase):
    """Test split_segments() boundaries and operator bookkeeping."""

    def test_empty_string(self):
        self.assertEqual(split_segments(""), [])

    def test_whitespace_only(self):
        self.assertEqual(split_segments("   "), [])

    def test_lone_operators(self):
        for command in (";", "|", "&&", "||", ";;;", "&& ||"):
            with self.subTest(command=command):
                self.assertEqual(split_segments(command), [])

    def test_single_segment(self):
        segments = split_segments("  echo hello  ")
        self.assertEqual(len(segments), 1)
        self.assertEqual(segments[0]["raw"], "echo hello")
        self.assertEqual(segments[0]["operator"], "")
        self.assertEqual(values(segments[0]["tokens"]), ["echo", "hello"])

    def test_all_operators(self):
        segments = split_segments("a && b || c ; d | e")
        self.assertEqual([s["raw"] for s in segments], ["a", "b", "c", "d", "e"])
        self.assertEqual([s["operator"] for s in segments], ["", "&&", "||", ";", "|"])

    def test_operators_without_spaces(self):
        segments = split_segments("a&&b||c;d|e")
        self.assertEqual([s["raw"] for s in segments], ["a", "b", "c", "d", "e"])

    def test_trailing_operator_dropped(self):
        self.assertEqual([s["raw"] for s in split_segments("echo hello;")], ["echo hello"])

    def test_leading_operator_first_segment_has_none(self):
        segments = split_segments("; echo hello")
        self.assertEqual(len(segments), 1)
        self.assertEqual(segments[0]["operator"], "")

    def test_empty_middle_segment_keeps_last_operator(self):
        """Operator of a segment is the one consumed right before it began."""
        segments = split_segments("a && ; b")
        self.assertEqual([s["raw"] for s in segments], ["a", "b"])
        self.assertEqual(segments[1]["operator"], ";")

    def test_operators_inside_quotes_are_inert(self):
        segments = split_segments("echo 'a && b' \"c; d | e\"")
        self.assertEqual(len(segments), 1)
        self.assertEqual(segments[0]["raw"], "echo 'a && b' \"c; d | e\"")

    def test_escaped_semicolon_not_split(self):
        segments = split_segments(r"find . -exec rm {} \;")
        self.assertEqual(len(segments), 1)
        self.assertEqual(values(segments[0]["tokens"])[-1], r"\;")

    def test_escaped_pipe_not_split(self):
        self.assertEqual(len(split_segments(r"echo a\|b")), 1)

    def test_segment_raw_keeps_inner_spacing(self):
        segments = split_segments("echo  a   b ;  ls")
        self.assertEqual(segments[0]["raw"], "echo  a   b")

    def test_many_segments(self):
        command = "; ".join(f"echo {i}" for i in range(100))
        self.assertEqual(len(split_segments(command)), 100)


# ============================================================
# 3. Prefix Parser
# ============================================================

class TestParsePrefix(unittest.TestCase):
    """Test parse_prefix() env assignment and sudo option grammar."""

    def parse(self, command):
        tokens = tokenize(command)
        index, env_prefix, sudo_prefix = parse_prefix(tokens)
        rest = values(tokens[index:])
        return rest, env_prefix, sudo_prefix

    def test_no_prefix(self):
        self.assertEqual(self.parse("rm file"), (["rm", "file"], "", ""))

    def test_env_assignments(self):
        self.assertEqual(self.parse("A=1 B=2 rm dir"), (["rm", "dir"], "A=1 B=2", ""))

    def test_env_assignment_with_quoted_value(self):
        self.assertEqual(self.parse('MSG="a b" rm x'), (["rm", "x"], 'MSG="a b"', ""))

    def test_sudo_plain(self):
        self.assertEqual(self.parse("sudo rm file"), (["rm", "file"], "", "sudo"))

    def test_sudo_option_with_argument(self):
        self.assertEqual(self.parse("sudo -u root rm file"), (["rm", "file"], "", "sudo -u root"))

    def test_sudo_options_mixed(self):
        rest, _env, sudo = self.parse("sudo -n -g wheel -E rm -rf dir")
        self.assertEqual(rest, ["rm", "-rf", "dir"])
        self.assertEqual(sudo, "sudo -n -g wheel -E")

    def test_sudo_unknown_dash_option_consumed_alone(self):
        self.assertEqual(self.parse("sudo --preserve-env rm x"),
                         (["rm", "x"], "", "sudo --preserve-env"))

    def test_env_then_sudo(self):
        self.assertEqual(self.parse("FOO=bar sudo -u root rm x"),
                         (["rm", "x"], "FOO=bar", "sudo -u root"))

    def test_sudo_option_argument_at_end(self):
        self.assertEqual(self.parse("sudo -u"), ([], "", "sudo -u"))

    def test_only_assignments(self):
        self.assertEqual(self.parse("A=1 B=2"), ([], "A=1 B=2", ""))

    def test_assignment_needs_identifier(self):
        self.assertFalse(is_shell_assignment("1A=x"))
        self.assertFalse(is_shell_assignment("=x"))
        self.assertTrue(is_shell_assignment("_A1="))
        self.assertTrue(is_shell_assignment("PATH=/bin"))

    def test_sudo_after_command_is_not_prefix(self):
        self.assertEqual(self.parse("echo sudo rm"), (["echo", "sudo", "rm"], "", ""))


# ============================================================
# 4. rm Flag Table
# ============================================================

class TestRmFlagTable(unittest.TestCase):
    """Test the structural and predicate views of the rm flag table."""

    def test_short_clusters_are_flags(self):
        for token in ("-r", "-R", "-f", "-rf", "-fr", "-Rfv", "-i", "-I", "-d", "-v"):
            with self.subTest(token=token):
                self.assertTrue(is_rm_flag(token))

    def test_long_flags_are_flags(self):
        for token in ("--recursive", "--force", "--interactive", "--verbose", "--dir",
                      "--one-file-system", "--no-preserve-root", "--preserve-root"):
            with self.subTest(token=token):
                self.assertTrue(is_rm_flag(token))

    def test_unknown_dash_tokens_are_operands(self):
        for token in ("-", "--", "-x", "-rfx", "--foo", "--interactive=always", "-weird"):
            with self.subTest(token=token):
                self.assertFalse(is_rm_flag(token))

    def test_plain_words_are_not_flags(self):
        self.assertFalse(is_rm_flag("file"))
        self.assertFalse(is_rm_flag("r"))

    def test_effects_short(self):
        self.assertEqual(rm_flag_effects("-rf"), (True, True))
        self.assertEqual(rm_flag_effects("-fR"), (True, True))
        self.assertEqual(rm_flag_effects("-r"), (True, False))
        self.assertEqual(rm_flag_effects("-f"), (False, True))
        self.assertEqual(rm_flag_effects("-v"), (False, False))

    def test_effects_long(self):
        self.assertEqual(rm_flag_effects("--recursive"), (True, False))
        self.assertEqual(rm_flag_effects("--force"), (False, True))
        self.assertEqual(rm_flag_effects("--verbose"), (False, False))
        self.assertEqual(rm_flag_effects("--forced"), (False, False))

    def test_effects_non_option(self):
        self.assertEqual(rm_flag_effects("-"), (False, False))
        self.assertEqual(rm_flag_effects("rf"), (False, False))

    def test_is_option_like(self):
        self.assertTrue(is_option_like("-x"))
        self.assertTrue(is_option_like("--"))
        self.assertFalse(is_option_like("-"))
        self.assertFalse(is_option_like("file"))


if __name__ == "__main__":
    unittest.main()
