"""Role-scoped filters over the Delivery collection."""

from dataclasses import dataclass
from enum import Enum


class ScopeKind(Enum):
    OPERATOR = "operator"
    DRIVER = "driver"
    CUSTOMER = "customer"


# Delivery field each scope is keyed on
SCOPE_FIELDS = {
    ScopeKind.OPERATOR: "company_id",
    ScopeKind.DRIVER: "driver_id",
    ScopeKind.CUSTOMER: "customer_id",
}


@dataclass(frozen=True)
class Scope:
    kind: ScopeKind
    key: str

    def __post_init__(self):
        if not self.key:
            raise ValueError(f"A {self.kind.value} scope needs a key")
        object.__setattr__(self, "key", str(self.key))

    @classmethod
    def operator(cls, company_id: str) -> "Scope":
        return cls(ScopeKind.OPERATOR, company_id)

    @classmethod
    def driver(cls, driver_id: str) -> "Scope":
        return cls(ScopeKind.DRIVER, driver_id)

    @classmethod
    def customer(cls, customer_id: str) -> "Scope":
        return cls(ScopeKind.CUSTOMER, customer_id)

    @property
    def field(self) -> str:
        return SCOPE_FIELDS[self.kind]

    def matches(self, keys: dict) -> bool:
        """Whether a delivery with these scope keys falls inside this scope."""
        value = keys.get(self.field)
        return value is not None and str(value) == self.key

    def __str__(self):
        return f"{self.kind.value}:{self.key}"
