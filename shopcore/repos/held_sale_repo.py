# shopcore/repos/held_sale_repo.py
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from shopcore.data.models.held_sale import HeldSaleModel


class HeldSaleRepo:
    def __init__(self, db: Session):
        self.db = db

    def create(self, held: HeldSaleModel) -> HeldSaleModel:
        self.db.add(held)
        self.db.flush()
        return held

    def get(self, tenant_id: int, shop_id: int, held_id: int) -> HeldSaleModel | None:
        return self.db.execute(
            select(HeldSaleModel).where(
                HeldSaleModel.tenant_id == tenant_id,
                HeldSaleModel.shop_id == shop_id,
                HeldSaleModel.id == held_id,
            )
        ).scalar_one_or_none()

    def last_for_shop(self, tenant_id: int, shop_id: int) -> HeldSaleModel | None:
        return self.db.execute(
            select(HeldSaleModel)
            .where(
                HeldSaleModel.tenant_id == tenant_id,
                HeldSaleModel.shop_id == shop_id,
            )
            .order_by(HeldSaleModel.id.desc())
            .limit(1)
        ).scalar_one_or_none()

    def list_active(self, tenant_id: int, shop_id: int, now: datetime) -> list[HeldSaleModel]:
        return list(
            self.db.execute(
                select(HeldSaleModel)
                .where(
                    HeldSaleModel.tenant_id == tenant_id,
                    HeldSaleModel.shop_id == shop_id,
                    HeldSaleModel.retrieved_at.is_(None),
                    HeldSaleModel.expires_at > now,
                )
                .order_by(HeldSaleModel.created_at.desc())
            ).scalars().all()
        )

    def list_expired(self, now: datetime) -> list[HeldSaleModel]:
        return list(
            self.db.execute(
                select(HeldSaleModel).where(
                    HeldSaleModel.retrieved_at.is_(None),
                    HeldSaleModel.expires_at <= now,
                )
            ).scalars().all()
        )

    def delete(self, held: HeldSaleModel) -> None:
        self.db.delete(held)
        self.db.flush()
