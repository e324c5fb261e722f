"""
Browser artifact collection.

- catalog.py   What counts as an artifact, and where each browser keeps its profile
- locator.py   User enumeration and profile resolution under a users root
- copier.py    Selective copy of catalogued items into the staging tree
"""

from .catalog import (
    ARTIFACT_SPECS,
    BROWSER_LAYOUTS,
    ArtifactSpec,
    BrowserProfileLayout,
    get_all_browsers,
    get_browser_label,
    layout_for,
    spec_for,
)
from .copier import CollectionResult, ItemResult, SelectiveCopier
from .locator import ProfileRef, UserEnumeration, enumerate_users, resolve_profiles
