"""
NIST Cybersecurity Framework catalog: Functions -> Categories -> Controls.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from compliance_platform.core.database import Base


class CsfFunction(Base):
    """One of the five CSF functions (ID, PR, DE, RS, RC)."""
    __tablename__ = "nist_csf_functions"

    id = Column(Integer, primary_key=True, index=True)
    function_code = Column(String(10), unique=True, nullable=False, index=True)
    function_name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    display_order = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    categories = relationship(
        "CsfCategory",
        back_populates="function",
        cascade="all, delete-orphan",
        order_by="CsfCategory.display_order",
    )


class CsfCategory(Base):
    """A category within a function, e.g. ID.AM Asset Management."""
    __tablename__ = "nist_csf_categories"

    id = Column(Integer, primary_key=True, index=True)
    function_id = Column(Integer, ForeignKey("nist_csf_functions.id", ondelete="CASCADE"), nullable=False, index=True)
    category_code = Column(String(20), unique=True, nullable=False, index=True)
    category_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    display_order = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    function = relationship("CsfFunction", back_populates="categories")
    controls = relationship(
        "CsfControl",
        back_populates="category",
        cascade="all, delete-orphan",
        order_by="CsfControl.display_order",
    )


class CsfControl(Base):
    """A control (subcategory), e.g. ID.AM-1."""
    __tablename__ = "nist_csf_controls"

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(Integer, ForeignKey("nist_csf_categories.id", ondelete="CASCADE"), nullable=False, index=True)
    control_code = Column(String(50), unique=True, nullable=False, index=True)
    control_name = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    guidance = Column(Text, nullable=True)
    importance = Column(String(20), nullable=False, default="medium")  # low, medium, high, critical
    display_order = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    category = relationship("CsfCategory", back_populates="controls")

    @property
    def function_code(self) -> str:
        """Two-letter function prefix of the control code."""
        return self.control_code[:2]
