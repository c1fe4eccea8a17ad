from dataclasses import dataclass
from restaurant.domain.enums import Role


@dataclass(frozen=True)
class Caller:
    """Identity already verified by the upstream authentication layer."""

    user_id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_staff(self) -> bool:
        return self.role != Role.CUSTOMER
