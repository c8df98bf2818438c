"""Directory adapter backed by ldap3."""

from __future__ import annotations

from .client import Ldap3DirectoryClient, LdapConnection
from .schema import SearchResultEntry, parse_search_response
from .translator import DirectoryGroupTranslator

__all__ = [
    "DirectoryGroupTranslator",
    "Ldap3DirectoryClient",
    "LdapConnection",
    "SearchResultEntry",
    "parse_search_response",
]
