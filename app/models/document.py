from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.sql import func

from app.core.database import Base


class Document(Base):
    """Keyed JSON document, addressed by (collection, doc_id).

    Backs the business, businessLocations, businessKyc, brands and
    vehicleBrands collections.
    """

    __tablename__ = "documents"

    collection = Column(String(100), primary_key=True)
    doc_id = Column(String(255), primary_key=True)

    data = Column(JSON, nullable=False, default=dict)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
