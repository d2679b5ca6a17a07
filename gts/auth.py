# gts/auth.py
"""Caller identity as seen by the core.

Credential checks and session issuance belong to an external service; the
core only asks "who is calling" and "what profile fields came with the
session". StaticAuth is the stand-in used by the HTTP layer and tests.
"""
from typing import Optional, Protocol


class AuthProvider(Protocol):
    def current_caller_id(self) -> Optional[str]: ...

    def current_caller_metadata(self) -> dict: ...


class StaticAuth:

    def __init__(self, caller_id: str | None = None, metadata: dict | None = None):
        self.caller_id = caller_id
        self.metadata = dict(metadata or {})

    def sign_in(self, caller_id: str, metadata: dict | None = None):
        self.caller_id = caller_id
        self.metadata = dict(metadata or {})

    def sign_out(self):
        self.caller_id = None
        self.metadata = {}

    def current_caller_id(self) -> Optional[str]:
        return self.caller_id or None

    def current_caller_metadata(self) -> dict:
        return dict(self.metadata) if self.caller_id else {}
