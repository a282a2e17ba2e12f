from sqlalchemy import Column, DateTime, Integer, Text
from models.base import Base


class AddressImportState(Base):
    """
    Tracks the outcome of the import for each registry month.

    Purpose:
    - Skip a month that already completed
    - Leave a trace of failed or interrupted runs
    - Remember the expected row count when the line pre-pass ran

    Design:
    - One row per month, upserted by month
    - status holds an ImportStatus value as plain text
    """
    __tablename__ = "address_import_state"

    month = Column(Text, primary_key=True)  # YYYYMM
    status = Column(Text, nullable=True)
    finished_at = Column(DateTime(timezone=True), nullable=True)
    expected_count = Column(Integer, nullable=True)
