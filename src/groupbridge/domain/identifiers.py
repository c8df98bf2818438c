"""Synthetic group identifiers for directory DNs.

Directory groups have no integer identity of their own. Each DN is recorded
once in an append-only ledger and its row id, shifted by
``DIRECTORY_ID_OFFSET``, becomes the group id used everywhere else. Local and
directory ids therefore never overlap:

- ``id < DIRECTORY_ID_OFFSET``: local group
- ``id >= DIRECTORY_ID_OFFSET``: directory group, ``id - offset`` is the ledger row

DNs are case-folded before lookup so that ``CN=Staff,...`` and ``cn=staff,...``
share one id.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from groupbridge.domain.model import DIRECTORY_ID_OFFSET, is_directory_id

if TYPE_CHECKING:
    from groupbridge.domain.ports import DnMappingRepository

log = getLogger(__name__)


def canonical_dn(dn: str) -> str:
    return dn.strip().lower()


class IdentifierMapper:
    """Bijective mapping between directory DNs and synthetic group ids."""

    def __init__(self, repository: DnMappingRepository) -> None:
        self._repository = repository

    def id_for_dn(self, dn: str, *, allocate: bool = True) -> int | None:
        """Return the group id for ``dn``.

        Unseen DNs are allocated on first use unless ``allocate`` is false, in
        which case ``None`` is returned.
        """

        key = canonical_dn(dn)
        row_id = self._repository.get_row_id(key)
        if row_id is None:
            if not allocate:
                return None
            row_id = self._repository.insert_or_get(key)
            log.info("Mapped %s to group id %s", key, row_id + DIRECTORY_ID_OFFSET)
        return row_id + DIRECTORY_ID_OFFSET

    def dn_for_id(self, group_id: int) -> str | None:
        if not is_directory_id(group_id):
            return None
        return self._repository.get_dn(group_id - DIRECTORY_ID_OFFSET)
