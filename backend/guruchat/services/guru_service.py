from dataclasses import dataclass
from sqlalchemy.orm import Session
from typing import List, Optional
import logging
import re
import unicodedata

from guruchat.config import settings
from guruchat.exceptions import NotFoundError
from guruchat.models import Guru
from guruchat.schemas import GuruResponse
from guruchat.utils.identifiers import parse_id, parse_id_or_none

logger = logging.getLogger(__name__)

IMAGE_BASE_PATH = "/static/images"


@dataclass(frozen=True)
class ResolvedPrompt:
    system_prompt: str
    guru: Optional[Guru] = None


def guru_image_path(name: str) -> str:
    """'Brené Brown' -> '/static/images/brene_brown.png'"""
    decomposed = unicodedata.normalize("NFD", name)
    ascii_name = "".join(c for c in decomposed if not unicodedata.combining(c))
    slug = re.sub(r"\s+", "_", ascii_name.strip().lower())
    return f"{IMAGE_BASE_PATH}/{slug}.png"


def to_guru_response(guru: Guru) -> GuruResponse:
    return GuruResponse(
        id=guru.id,
        name=guru.name,
        description=guru.description,
        system_prompt=guru.system_prompt,
        image_path=guru_image_path(guru.name),
    )


def list_gurus(db: Session) -> List[Guru]:
    return db.query(Guru).order_by(Guru.name, Guru.id).all()


def get_guru(db: Session, guru_id: str) -> Guru:
    guru = db.query(Guru).filter(Guru.id == parse_id(guru_id, "Guru")).first()
    if not guru:
        raise NotFoundError("Guru", guru_id)
    return guru


def resolve_system_prompt(db: Session, guru_id: Optional[str]) -> ResolvedPrompt:
    """Pick the persona's prompt, falling back to the default for absent, malformed or unknown ids."""
    default = ResolvedPrompt(system_prompt=settings.DEFAULT_SYSTEM_PROMPT)
    if not guru_id:
        logger.info("No Guru ID provided, using default system prompt")
        return default

    parsed = parse_id_or_none(guru_id)
    if parsed is None:
        logger.warning(f"Invalid Guru ID provided: {guru_id}. Using default system prompt.")
        return default

    guru = db.query(Guru).filter(Guru.id == parsed).first()
    if not guru or not guru.system_prompt:
        logger.warning(f"Guru not found or has no system prompt for ID: {guru_id}. Using default.")
        return default

    logger.info("Using persona system prompt", extra={"guru_id": str(guru.id)})
    return ResolvedPrompt(system_prompt=guru.system_prompt, guru=guru)
