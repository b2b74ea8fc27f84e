"""Schemas for the NIST CSF catalog."""
from typing import List, Optional
from pydantic import BaseModel


class CsfControlResponse(BaseModel):
    id: int
    control_code: str
    control_name: str
    description: Optional[str] = None
    guidance: Optional[str] = None
    importance: str
    display_order: int

    model_config = {"from_attributes": True}


class CsfCategoryResponse(BaseModel):
    id: int
    category_code: str
    category_name: str
    description: Optional[str] = None
    display_order: int
    controls: List[CsfControlResponse] = []

    model_config = {"from_attributes": True}


class CsfFunctionResponse(BaseModel):
    id: int
    function_code: str
    function_name: str
    description: Optional[str] = None
    display_order: int
    categories: List[CsfCategoryResponse] = []

    model_config = {"from_attributes": True}
