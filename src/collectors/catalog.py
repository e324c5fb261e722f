"""
Artifact Catalog

Single point of truth for what counts as a browser artifact.
Changing forensic scope means editing only the tables below.

Supported browsers (Windows per-user application-data layout):
- Chromium engine: Chrome, Edge, Brave (one ``User Data/Default`` profile each)
- Gecko engine: Firefox (multi-profile ``Profiles`` root)

Artifact coverage per engine:
- History, visited links, shortcuts, top sites
- Cookies (legacy and ``Network/`` locations for Chromium)
- Credential stores: Login Data / Web Data (Chromium), logins.json + key4.db (Firefox)
- Bookmarks, preferences, sessions
- Extension state, Local Storage, Session Storage, IndexedDB

Usage:
    from collectors.catalog import spec_for, layout_for

    spec = spec_for(Browser.CHROME)
    for name in spec.files:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping

from core.enums import Browser, BrowserEngine


@dataclass(frozen=True)
class ArtifactSpec:
    """Relative file and directory names collected from one profile."""

    engine: BrowserEngine
    files: frozenset[str]
    directories: frozenset[str]


@dataclass(frozen=True)
class BrowserProfileLayout:
    """
    Where one browser keeps its profile under a user home.

    Attributes:
        label: Staging directory and ledger ``Browser`` value (e.g. "Chrome")
        display_name: Human-readable name for the transcript
        engine: Engine family, selects the ArtifactSpec
        profile_path: User-home-relative path (POSIX separators)
        multi_profile: True when ``profile_path`` holds one directory per profile
    """

    label: str
    display_name: str
    engine: BrowserEngine
    profile_path: str
    multi_profile: bool = False


# Artifact names relative to a profile directory
ARTIFACT_SPECS: Mapping[BrowserEngine, ArtifactSpec] = MappingProxyType({
    BrowserEngine.CHROMIUM: ArtifactSpec(
        engine=BrowserEngine.CHROMIUM,
        files=frozenset({
            # History and navigation
            "History",
            "History-journal",
            "Visited Links",
            "Top Sites",
            "Shortcuts",
            "Favicons",
            # Cookies (Chromium 96+ moved them under Network/)
            "Cookies",
            "Network/Cookies",
            # Credential stores and autofill
            "Login Data",
            "Login Data-journal",
            "Web Data",
            # Bookmarks and preferences
            "Bookmarks",
            "Bookmarks.bak",
            "Preferences",
            "Secure Preferences",
            # Sessions (pre-Chromium 100 flat files)
            "Current Session",
            "Current Tabs",
            "Last Session",
            "Last Tabs",
        }),
        directories=frozenset({
            "Sessions",
            "Extensions",
            "Local Extension Settings",
            "Local Storage",
            "Session Storage",
            "IndexedDB",
        }),
    ),
    BrowserEngine.GECKO: ArtifactSpec(
        engine=BrowserEngine.GECKO,
        files=frozenset({
            # History and bookmarks share places.sqlite
            "places.sqlite",
            "places.sqlite-wal",
            "favicons.sqlite",
            "cookies.sqlite",
            "cookies.sqlite-wal",
            # Credential stores and form history
            "logins.json",
            "key4.db",
            "cert9.db",
            "formhistory.sqlite",
            # Preferences, permissions, sessions
            "prefs.js",
            "permissions.sqlite",
            "content-prefs.sqlite",
            "sessionstore.jsonlz4",
            "SiteSecurityServiceState.txt",
            # Extension state and legacy DOM storage
            "extensions.json",
            "addons.json",
            "webappsstore.sqlite",
        }),
        directories=frozenset({
            "sessionstore-backups",
            "bookmarkbackups",
            "storage",
        }),
    ),
})


BROWSER_LAYOUTS: Mapping[Browser, BrowserProfileLayout] = MappingProxyType({
    Browser.CHROME: BrowserProfileLayout(
        label="Chrome",
        display_name="Google Chrome",
        engine=BrowserEngine.CHROMIUM,
        profile_path="AppData/Local/Google/Chrome/User Data/Default",
    ),
    Browser.EDGE: BrowserProfileLayout(
        label="Edge",
        display_name="Microsoft Edge",
        engine=BrowserEngine.CHROMIUM,
        profile_path="AppData/Local/Microsoft/Edge/User Data/Default",
    ),
    Browser.BRAVE: BrowserProfileLayout(
        label="Brave",
        display_name="Brave",
        engine=BrowserEngine.CHROMIUM,
        profile_path="AppData/Local/BraveSoftware/Brave-Browser/User Data/Default",
    ),
    Browser.FIREFOX: BrowserProfileLayout(
        label="Firefox",
        display_name="Mozilla Firefox",
        engine=BrowserEngine.GECKO,
        # Profile data lives in Roaming; cache (not collected) lives in Local
        profile_path="AppData/Roaming/Mozilla/Firefox/Profiles",
        multi_profile=True,
    ),
})


def spec_for(browser: Browser) -> ArtifactSpec:
    """Return the ArtifactSpec for a browser's engine family."""
    return ARTIFACT_SPECS[BROWSER_LAYOUTS[Browser(browser)].engine]


def layout_for(browser: Browser) -> BrowserProfileLayout:
    """Return the profile layout for a browser."""
    return BROWSER_LAYOUTS[Browser(browser)]


def get_all_browsers() -> List[Browser]:
    """
    Get list of all catalogued browsers.

    Returns:
        Browser keys in catalog order
    """
    return list(BROWSER_LAYOUTS.keys())


def get_browser_label(browser: Browser) -> str:
    """Return the staging directory / ledger label for a browser."""
    return BROWSER_LAYOUTS[Browser(browser)].label


def describe_catalog() -> Dict[str, Dict[str, List[str]]]:
    """
    Return the catalog as plain sorted lists, keyed by browser label.

    Used to write forensic scope into the run transcript.
    """
    described = {}
    for browser, layout in BROWSER_LAYOUTS.items():
        spec = ARTIFACT_SPECS[layout.engine]
        described[layout.label] = {
            "files": sorted(spec.files),
            "directories": sorted(spec.directories),
        }
    return described
