"""Code Analytics — Identity Mapping & Config API Routes."""

from typing import Dict

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlmodel import Session, select

from code_analytics.core.logging import get_logger
from code_analytics.database import get_session
from code_analytics.models.normalized_models import ConfigEntry
from code_analytics.storage.identity_store import delete_mapping, list_mappings, save_config, upsert_mapping

logger = get_logger("api.identity")

router = APIRouter(prefix="/api", tags=["Identity"])


class IdentityMappingRequest(BaseModel):
    email: str
    github_username: str

    @field_validator("email", "github_username")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        if "@" not in value:
            raise ValueError("must be an email address")
        return value.lower()


class ConfigRequest(BaseModel):
    """Operator config entries, e.g. ``{"github_repos": "acme/api,acme/web"}``."""

    values: Dict[str, str]


def _mapping_dict(mapping) -> dict:
    return {
        "email": mapping.email,
        "github_username": mapping.github_username,
        "updated_at": mapping.updated_at.isoformat() if mapping.updated_at else None,
    }


@router.get("/identity-mappings")
async def get_identity_mappings(session: Session = Depends(get_session)):
    mappings = list_mappings(session)
    return {"status": "success", "count": len(mappings), "mappings": [_mapping_dict(m) for m in mappings]}


@router.post("/identity-mappings")
async def post_identity_mapping(request: IdentityMappingRequest, session: Session = Depends(get_session)):
    """Create or replace the GitHub login for an email."""
    mapping = upsert_mapping(session, request.email, request.github_username)
    return {"status": "success", "mapping": _mapping_dict(mapping)}


@router.delete("/identity-mappings/{email}")
async def remove_identity_mapping(email: str, session: Session = Depends(get_session)):
    if not delete_mapping(session, email.lower()):
        raise HTTPException(status_code=404, detail=f"No mapping for {email}")
    return {"status": "success", "deleted": email.lower()}


@router.get("/config")
async def get_config_entries(session: Session = Depends(get_session)):
    entries = session.exec(select(ConfigEntry).order_by(ConfigEntry.key)).all()
    return {"status": "success", "config": {e.key: e.value for e in entries}}


@router.post("/config")
async def post_config_entries(request: ConfigRequest, session: Session = Depends(get_session)):
    for key, value in request.values.items():
        save_config(session, key, value.strip())
    logger.info(f"Updated config keys: {', '.join(sorted(request.values))}")
    return await get_config_entries(session)
