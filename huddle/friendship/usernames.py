"""
Username normalization.

Display usernames may carry decorative badges (a shield for moderators, a
crown for owners, or any other emoji). Lookups compare the *normalized* form,
which is written to ``profiles.username_normalized`` at registration so the
receiver of a friend request is found with an indexed equality query.
"""

import re

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_.-]+$")

# shield (with and without the emoji presentation selector), crown
DECORATIVE_BADGES = ("\U0001F6E1\uFE0F", "\U0001F6E1", "\U0001F451")

EMOJI_PATTERN = re.compile(
    "["
    "\U0001F600-\U0001F6FF"
    "\u2600-\u26FF"
    "\u2700-\u27BF"
    "\U0001F900-\U0001F9FF"
    "\U0001F300-\U0001F5FF"
    "\U0001F1E0-\U0001F1FF"
    "\uFE0F"
    "]"
)


def normalize_username(username: str) -> str:
    result = username
    for badge in DECORATIVE_BADGES:
        result = result.replace(badge, "")
    result = EMOJI_PATTERN.sub("", result)
    return result.strip().lower()


def is_valid_lookup_username(username: str) -> bool:
    return bool(USERNAME_PATTERN.match(username))
