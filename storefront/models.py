from sqlalchemy import Column, String, JSON
from storefront.database import Base

class Document(Base):
    __tablename__ = "documents"

    path = Column(String, primary_key=True)        # stripe_customers/{uid}/payments/{pushId}
    collection = Column(String, index=True)        # path minus the last segment
    data = Column(JSON, nullable=False, default=dict)
