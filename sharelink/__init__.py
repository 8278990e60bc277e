"""
ShareLink

Upload a file, share a link to it, optionally behind a password or an
expiration date.
"""

import importlib.metadata

__version__ = importlib.metadata.version("sharelink")

from .lifecycle import LinkLifecycleManager
from .policy import AccessDecision, AccessPolicyEngine, evaluate_access
from .render import RenderMode, select_render_mode
from .schemas import LinkDraft, LinkPatch
from .storage import BlobStore, create_blob_store

__all__ = [
    "AccessDecision",
    "AccessPolicyEngine",
    "BlobStore",
    "LinkDraft",
    "LinkLifecycleManager",
    "LinkPatch",
    "RenderMode",
    "create_blob_store",
    "evaluate_access",
    "select_render_mode",
]
