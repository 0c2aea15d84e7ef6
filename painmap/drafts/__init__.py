# painmap/drafts/__init__.py
from .store import DraftStore, InMemoryDraftStore, FileDraftStore
from .codec import DraftSnapshot, encode_draft, decode_draft
from .autosave import AutosaveScheduler, DeferredTask

__all__ = [
    "DraftStore",
    "InMemoryDraftStore",
    "FileDraftStore",
    "DraftSnapshot",
    "encode_draft",
    "decode_draft",
    "AutosaveScheduler",
    "DeferredTask",
]
