"""
Banner model
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text

from shopease.utils.database import Base, utcnow


class LinkType:
    NONE = "none"
    PRODUCT = "product"
    CATEGORY = "category"
    URL = "url"
    ALL = (NONE, PRODUCT, CATEGORY, URL)


class Banner(Base):
    __tablename__ = "banners"

    banner_id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    image_url = Column(Text, nullable=False)
    link_type = Column(String(20), default=LinkType.NONE, nullable=False)
    link_value = Column(String(500))
    display_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    display_on_home = Column(Boolean, default=True, nullable=False)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Banner(id={self.banner_id}, title={self.title}, active={self.is_active})>"
