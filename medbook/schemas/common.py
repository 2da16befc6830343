from pydantic import BaseModel, ConfigDict

class ORMModel(BaseModel):
    """Response schema read straight from ORM attributes."""
    model_config = ConfigDict(from_attributes=True)
