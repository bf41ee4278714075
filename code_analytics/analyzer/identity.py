"""Code Analytics — Identity Reconciler.

Cursor and Claude Code key users by email; GitHub keys them by login.
Operator-maintained mappings (email → GitHub login) join the two. A login
with no mapping stays its own row, flagged unmapped, so the dashboard can
prompt for one instead of guessing.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from code_analytics.core.accessors import Number
from code_analytics.core.logging import get_logger

logger = get_logger("analyzer.identity")


class IdentityKind(str, Enum):
    """What a provider's by_user keys are."""

    EMAIL = "email"
    GITHUB = "github"


@dataclass
class MemberIdentity:
    """One reconciled team member and their per-source metric rows."""

    identifier: str
    is_unmapped: bool = False
    github_username: Optional[str] = None
    keys: Dict[str, Set[str]] = field(default_factory=dict)
    metrics: Dict[str, Dict[str, Number]] = field(default_factory=dict)

    def source_row(self, source: str) -> Dict[str, Number]:
        """Get-or-insert the metric row for ``source``."""
        return self.metrics.setdefault(source, {})


class IdentityResolver:
    """Resolves provider keys to member identities using stored mappings.

    Accepts IdentityMapping rows or plain ``(email, github_username)``
    pairs. Matching is case-insensitive on both sides.
    """

    def __init__(self, mappings: Iterable = ()):
        self._email_by_login: Dict[str, str] = {}
        self._login_by_email: Dict[str, str] = {}
        for mapping in mappings:
            email, login = _pair(mapping)
            if not email or not login:
                continue
            self._email_by_login[login.lower()] = email.lower()
            self._login_by_email[email.lower()] = login

    def __len__(self) -> int:
        return len(self._login_by_email)

    def resolve(self, key: str, kind: IdentityKind) -> Tuple[Tuple[str, str], str, bool]:
        """Return ``(member_key, identifier, is_unmapped)`` for a provider key."""
        if kind == IdentityKind.GITHUB:
            email = self._email_by_login.get(key.lower())
            if email is None:
                return (IdentityKind.GITHUB.value, key.lower()), key, True
            return (IdentityKind.EMAIL.value, email), email, False
        email = key.lower()
        return (IdentityKind.EMAIL.value, email), email, False

    def github_login_for(self, email: str) -> Optional[str]:
        return self._login_by_email.get(email.lower())

    def matches(self, identifier: str, key: str, kind: IdentityKind) -> bool:
        """True when provider ``key`` resolves to the member shown as ``identifier``."""
        _, resolved, _ = self.resolve(key, kind)
        return resolved.lower() == identifier.lower()


def _pair(mapping) -> Tuple[str, str]:
    if isinstance(mapping, (tuple, list)):
        return str(mapping[0] or ""), str(mapping[1] or "")
    return mapping.email or "", mapping.github_username or ""


def reconcile(
    resolver: IdentityResolver,
    rows_by_source: Mapping[str, Tuple[IdentityKind, Mapping[str, Mapping[str, Number]]]],
) -> List[MemberIdentity]:
    """Merge per-source by_user rows into one MemberIdentity per team member.

    Rows whose keys resolve to the same member are summed field by field,
    so pass raw counters here and derive ratios afterwards.
    """
    members: Dict[Tuple[str, str], MemberIdentity] = {}

    for source, (kind, rows) in rows_by_source.items():
        for key, row in rows.items():
            member_key, identifier, unmapped = resolver.resolve(key, kind)
            member = members.get(member_key)
            if member is None:
                member = MemberIdentity(
                    identifier=identifier,
                    is_unmapped=unmapped,
                    github_username=key if kind == IdentityKind.GITHUB else resolver.github_login_for(identifier),
                )
                members[member_key] = member
            member.keys.setdefault(source, set()).add(key)
            target = member.source_row(source)
            for name, value in row.items():
                target[name] = target.get(name, 0) + value

    unmapped = [m.identifier for m in members.values() if m.is_unmapped]
    if unmapped:
        logger.info(f"{len(unmapped)} GitHub users without an identity mapping: {', '.join(sorted(unmapped))}")
    return sorted(members.values(), key=lambda m: (m.is_unmapped, m.identifier.lower()))
