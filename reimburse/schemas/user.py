# schemas/user.py

from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel


class Role(str, Enum):
    ADMIN = "Admin"
    MEMBER = "Member"


def parse_role(value: Optional[str]) -> Role:
    # El backend envía "ADMIN", "admin", "Admin"...
    if value and str(value).strip().upper() == "ADMIN":
        return Role.ADMIN
    return Role.MEMBER


class Actor(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    role: Role = Role.MEMBER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class LoginRequest(BaseModel):
    email: str
    password: str


class ActorRead(BaseModel):
    id: str
    name: str
    email: Optional[str]
    role: Role
    is_admin: bool


def actor_from_wire(payload: Dict[str, Any]) -> Actor:
    return Actor(
        id=str(payload.get("id", "")),
        name=payload.get("nome") or payload.get("name") or "",
        email=payload.get("email"),
        role=parse_role(payload.get("role")),
    )


def actor_to_wire(actor: Actor) -> Dict[str, Any]:
    return {
        "id": actor.id,
        "nome": actor.name,
        "email": actor.email,
        "role": "ADMIN" if actor.is_admin else "MEMBER",
    }


def actor_read(actor: Actor) -> ActorRead:
    return ActorRead(
        id=actor.id,
        name=actor.name,
        email=actor.email,
        role=actor.role,
        is_admin=actor.is_admin,
    )
