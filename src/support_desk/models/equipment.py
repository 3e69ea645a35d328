"""
Equipment profile domain model.

A customer's equipment profile is one JSON document stored in a commerce
platform metafield. Every machine written goes through ``sanitize_machine``
so that every write respects the same caps.
"""

from typing import Annotated, Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from support_desk.models.ticket import utc_now_iso

MAX_MACHINES = 500
MAX_FAVORITES = 4

DEFAULT_FIELD_LENGTH = 50

# Free-text fields of a machine and their maximum lengths
MACHINE_FIELD_LIMITS: Dict[str, int] = {
    'id': 50,
    'name': 100,
    'category': DEFAULT_FIELD_LENGTH,
    'make': DEFAULT_FIELD_LENGTH,
    'type': DEFAULT_FIELD_LENGTH,
    'submodel': DEFAULT_FIELD_LENGTH,
    'model': DEFAULT_FIELD_LENGTH,
    'variant': DEFAULT_FIELD_LENGTH,
    'year': 10,
    'trim': DEFAULT_FIELD_LENGTH,
    'engine': DEFAULT_FIELD_LENGTH,
    'sku': DEFAULT_FIELD_LENGTH,
    'serial': DEFAULT_FIELD_LENGTH,
}


def sanitize_text(value: Any, max_length: int) -> str:
    """Strip angle brackets, trim whitespace and cap the length."""
    if value is None or value is False:
        return ''
    text = str(value).replace('<', '').replace('>', '').strip()
    return text[:max_length]


def is_truthy(value: Any) -> bool:
    """Client truthiness for flags: any non-empty value counts, containers included."""
    if isinstance(value, (list, dict)):
        return True
    return bool(value)


def generate_machine_id() -> str:
    return f"eq_{uuid4().hex[:16]}"


class Machine(BaseModel):
    """One piece of equipment in a customer's profile."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = ''
    name: str = ''
    category: str = ''
    make: str = ''
    type: str = ''
    submodel: str = ''
    model: str = ''
    variant: str = ''
    year: str = ''
    trim: str = ''
    engine: str = ''
    sku: str = ''
    serial: str = ''
    favorite: bool = False
    created_at: Annotated[Optional[str], Field(alias='createdAt')] = None
    updated_at: Annotated[Optional[str], Field(alias='updatedAt')] = None

    @field_validator(*MACHINE_FIELD_LIMITS, mode='before')
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        # Older documents hold numeric years and nulls
        if v is None:
            return ''
        return v if isinstance(v, str) else str(v)

    @field_validator('created_at', 'updated_at', mode='before')
    @classmethod
    def coerce_timestamp(cls, v: Any) -> Optional[str]:
        # Some stored documents hold epoch numbers
        if v is None:
            return None
        return v if isinstance(v, str) else str(v)

    @field_validator('favorite', mode='before')
    @classmethod
    def coerce_favorite(cls, v: Any) -> bool:
        return is_truthy(v)


def sanitize_machine(raw: Dict[str, Any], now: Optional[str] = None) -> Machine:
    """
    Build a Machine from untrusted client input.

    ``createdAt`` is kept when the client sends one, ``updatedAt`` is always
    the write time, and an empty id is replaced with a generated one.
    """
    now = now or utc_now_iso()
    values = {field: sanitize_text(raw.get(field), limit) for field, limit in MACHINE_FIELD_LIMITS.items()}
    if not values['id']:
        values['id'] = generate_machine_id()

    created_at = raw.get('createdAt') or raw.get('created_at')
    return Machine(
        **values,
        favorite=is_truthy(raw.get('favorite')),
        created_at=sanitize_text(created_at, 40) or now,
        updated_at=now,
    )


class EquipmentProfile(BaseModel):
    """The metafield document: ordered machines plus a document timestamp."""

    model_config = ConfigDict(populate_by_name=True)

    machines: List[Machine] = Field(default_factory=list)
    updated_at: Annotated[Optional[str], Field(alias='updatedAt')] = None

    @field_validator('updated_at', mode='before')
    @classmethod
    def coerce_timestamp(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return v if isinstance(v, str) else str(v)

    @property
    def machine_count(self) -> int:
        return len(self.machines)

    @property
    def favorite_count(self) -> int:
        return sum(1 for machine in self.machines if machine.favorite)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode='json')
