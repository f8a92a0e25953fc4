# shopcore/domain/values.py
from dataclasses import dataclass, field

from shopcore.domain.enums import MaterialOption, SellableKind


@dataclass(frozen=True)
class OwnerKey:
    """Kto jest wlascicielem koszyka: klient albo anonimowa sesja."""

    customer_id: int | None = None
    session_id: str | None = None

    def __post_init__(self):
        if (self.customer_id is None) == (self.session_id is None):
            raise ValueError("Exactly one of customer_id or session_id is required")

    @classmethod
    def customer(cls, customer_id: int) -> "OwnerKey":
        return cls(customer_id=customer_id)

    @classmethod
    def session(cls, session_id: str) -> "OwnerKey":
        return cls(session_id=session_id)

    @property
    def is_guest(self) -> bool:
        return self.session_id is not None

    def __str__(self) -> str:
        if self.customer_id is not None:
            return f"customer:{self.customer_id}"
        return f"session:{self.session_id}"


@dataclass(frozen=True)
class SellableRef:
    kind: SellableKind
    id: int

    @property
    def key(self) -> str:
        return f"{self.kind.value}:{self.id}"

    @classmethod
    def product(cls, variant_id: int) -> "SellableRef":
        return cls(SellableKind.PRODUCT, variant_id)

    @classmethod
    def service(cls, variant_id: int) -> "SellableRef":
        return cls(SellableKind.SERVICE, variant_id)


@dataclass(frozen=True)
class AddonSelection:
    addon_id: int
    quantity: int = 1


@dataclass(frozen=True)
class LineConfiguration:
    """Konfiguracja linii: opakowanie (produkty) albo material + dodatki (uslugi)."""

    packaging_type_id: int | None = None
    material_option: MaterialOption | None = None
    addons: tuple[AddonSelection, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # kanoniczna kolejnosc, zeby ten sam zestaw dodatkow dawal ten sam klucz
        merged: dict[int, int] = {}
        for a in self.addons:
            merged[a.addon_id] = merged.get(a.addon_id, 0) + a.quantity
        canonical = tuple(AddonSelection(k, merged[k]) for k in sorted(merged))
        object.__setattr__(self, "addons", canonical)

    @property
    def key(self) -> str:
        parts = []
        if self.packaging_type_id is not None:
            parts.append(f"pkg={self.packaging_type_id}")
        if self.material_option is not None:
            parts.append(f"mat={self.material_option.value}")
        if self.addons:
            parts.append("addons=" + ",".join(f"{a.addon_id}x{a.quantity}" for a in self.addons))
        return ";".join(parts)

    def addons_as_list(self) -> list[dict]:
        return [{"addon_id": a.addon_id, "quantity": a.quantity} for a in self.addons]

    @classmethod
    def from_stored(cls, packaging_type_id, material_option, selected_addons) -> "LineConfiguration":
        return cls(
            packaging_type_id=packaging_type_id,
            material_option=MaterialOption(material_option) if material_option else None,
            addons=tuple(
                AddonSelection(int(a["addon_id"]), int(a.get("quantity", 1)))
                for a in (selected_addons or [])
            ),
        )
