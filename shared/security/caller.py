from dataclasses import dataclass

CUSTOMER = "customer"
SELLER = "seller"
ADMIN = "admin"

ROLES = (CUSTOMER, SELLER, ADMIN)


@dataclass(frozen=True)
class Caller:
    """Identity resolved from the bearer token: who is calling and in which role."""
    id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN

    @property
    def is_seller(self) -> bool:
        return self.role == SELLER
