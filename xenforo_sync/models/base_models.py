"""Pydantic models"""

from pydantic import BaseModel, ConfigDict


class AliasModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
