from pydantic import BaseModel, UUID4, Field


# Screen: DB response
class Screen(BaseModel):
    id: UUID4
    theater_id: UUID4
    name: str
    capacity: int
    is_active: bool = True

    class Config:
        from_attributes = True


# Screen: capacity change (PATCH /screens/{id}/capacity)
class ScreenCapacityUpdate(BaseModel):
    capacity: int = Field(gt=0)


# Compact screen for nested responses
class ScreenSummary(BaseModel):
    id: UUID4
    name: str

    class Config:
        from_attributes = True
