# shopcore/data/models/customer.py
from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint

from shopcore.data.database import Base


class CustomerModel(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)

    __table_args__ = (UniqueConstraint("tenant_id", "email", name="u_customer_tenant_email"),)
