"""
Profile discovery under a users root.

Enumerates user accounts (one directory per user) and resolves each
catalogued browser's profile location beneath them. Absence of a browser for
a user is normal and is never reported as an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterable, Iterator, List, Optional

from core.enums import Browser
from core.logging import get_logger

from .catalog import layout_for

LOGGER = get_logger("collectors.locator")


@dataclass(frozen=True)
class ProfileRef:
    """One browser profile of one user on the source filesystem."""

    browser: Browser
    user: str
    source_path: Path
    profile_name: Optional[str] = None  # Firefox profile directory name


class UserEnumeration:
    """
    Restartable, lazy sequence of user names under a users root.

    Each iteration re-lists the directory. An unreadable or missing root
    yields nothing and is logged, never raised.
    """

    def __init__(self, users_root: Path, excluded: Iterable[str] = ()) -> None:
        self.users_root = Path(users_root)
        self.excluded = {name.casefold() for name in excluded}

    def __iter__(self) -> Iterator[str]:
        try:
            children = sorted(self.users_root.iterdir(), key=lambda p: p.name.casefold())
        except OSError as exc:
            LOGGER.warning("Cannot enumerate users under %s: %s; continuing with zero users",
                           self.users_root, exc)
            return
        for child in children:
            if child.name.casefold() in self.excluded:
                LOGGER.debug("Skipping excluded account directory %s", child.name)
                continue
            try:
                if not child.is_dir():
                    continue
            except OSError as exc:
                LOGGER.warning("Cannot inspect %s: %s", child, exc)
                continue
            yield child.name


def enumerate_users(users_root: Path, excluded: Iterable[str] = ()) -> UserEnumeration:
    """Return the user names under ``users_root`` as a restartable sequence."""
    return UserEnumeration(users_root, excluded)


def profile_root(user_home: Path, browser: Browser) -> Path:
    """Join a layout's POSIX profile path onto a user home."""
    return user_home.joinpath(*PurePosixPath(layout_for(browser).profile_path).parts)


def resolve_profiles(user_home: Path, browser: Browser) -> List[ProfileRef]:
    """
    Resolve existing profiles of one browser for one user.

    Chromium browsers yield zero or one profile (``User Data/Default``).
    Firefox yields one profile per immediate child directory of ``Profiles``.
    """
    browser = Browser(browser)
    layout = layout_for(browser)
    root = profile_root(user_home, browser)
    user = user_home.name

    if not root.is_dir():
        return []

    if not layout.multi_profile:
        LOGGER.debug("Found %s profile for %s at %s", layout.display_name, user, root)
        return [ProfileRef(browser=browser, user=user, source_path=root)]

    try:
        children = sorted(root.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        LOGGER.warning("Cannot list %s profiles for %s at %s: %s",
                       layout.display_name, user, root, exc)
        return []

    profiles = [
        ProfileRef(browser=browser, user=user, source_path=child, profile_name=child.name)
        for child in children
        if child.is_dir()
    ]
    LOGGER.debug("Found %d %s profile(s) for %s", len(profiles), layout.display_name, user)
    return profiles
