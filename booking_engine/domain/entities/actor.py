"""Actor autenticado que ejecuta una operación."""

from dataclasses import dataclass
from enum import Enum


class ActorRole(str, Enum):
    RENTER = "renter"
    OWNER = "owner"
    ADMIN = "admin"
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    """
    Identidad entregada por el colaborador de autenticación.

    El motor confía en ella; la relación con una reserva se comprueba por id.
    """

    id: str
    role: ActorRole

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN

    @classmethod
    def system(cls) -> "Actor":
        return cls(id="system", role=ActorRole.SYSTEM)
