"""Compiled patterns for status text entities.

All patterns are compiled once at import and never mutated.

Charsets:
- username: ASCII letters, digits and underscore
- domain: dot-separated hostname labels (ASCII letters, digits, inner hyphens)
- hashtag: Unicode word characters, so #café and #日本語 are hashtags
- emoji shortcode: ASCII letters, digits and underscore
"""

from __future__ import annotations

import re


USERNAME = r"[A-Za-z0-9_]+"
_LABEL = r"[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?"
DOMAIN = rf"{_LABEL}(?:\.{_LABEL})*"

# Not preceded by a word char or "@", which rules out e-mail addresses.
# The domain is atomic so a rejected tail cannot shorten it to an earlier
# label. Group 1 is "username" or "username@domain" without the leading "@".
MENTION_FINDER = re.compile(
    rf"(?<![\w@])@({USERNAME}(?:@(?>{DOMAIN}))?)(?![\w@])"
)

# Whole-string mention grammar; groups are username and optional domain.
MENTION_NAME = re.compile(rf"@({USERNAME})(?:@({DOMAIN}))?", re.IGNORECASE)

# "#tag" not preceded by a word char or "#", so URL fragments and "a#b" are
# skipped. Group 1 is the tag without "#".
HASHTAG_FINDER = re.compile(r"(?<![\w#])#(\w+)")

# ":shortcode:" not touching word chars or other colons, so "12:30:45" and
# "::x::" are not emoji.
EMOJI_FINDER = re.compile(r"(?<![\w:]):([A-Za-z0-9_]+):(?![\w:])")
