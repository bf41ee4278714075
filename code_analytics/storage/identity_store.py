"""Code Analytics — Identity Mapping and Config Stores."""

from datetime import datetime, timezone
from typing import List, Optional

from sqlmodel import Session, select

from code_analytics.core.logging import get_logger
from code_analytics.models.normalized_models import ConfigEntry, IdentityMapping

logger = get_logger("storage.identity")


def list_mappings(session: Session) -> List[IdentityMapping]:
    """All email → GitHub login mappings, ordered by email."""
    return list(session.exec(select(IdentityMapping).order_by(IdentityMapping.email)).all())


def upsert_mapping(session: Session, email: str, github_username: str) -> IdentityMapping:
    """Create or update the mapping for ``email``."""
    mapping = session.get(IdentityMapping, email)
    if mapping:
        mapping.github_username = github_username
        mapping.updated_at = datetime.now(timezone.utc)
    else:
        mapping = IdentityMapping(email=email, github_username=github_username)
    session.add(mapping)
    session.commit()
    session.refresh(mapping)
    logger.info(f"Mapped {email} → {github_username}")
    return mapping


def delete_mapping(session: Session, email: str) -> bool:
    """Remove the mapping for ``email``. Returns False if none existed."""
    mapping = session.get(IdentityMapping, email)
    if not mapping:
        return False
    session.delete(mapping)
    session.commit()
    logger.info(f"Deleted mapping for {email}")
    return True


def get_config(session: Session, key: str) -> Optional[str]:
    entry = session.get(ConfigEntry, key)
    return entry.value if entry else None


def save_config(session: Session, key: str, value: str) -> ConfigEntry:
    entry = session.get(ConfigEntry, key)
    if entry:
        entry.value = value
        entry.updated_at = datetime.now(timezone.utc)
    else:
        entry = ConfigEntry(key=key, value=value)
    session.add(entry)
    session.commit()
    session.refresh(entry)
    return entry
