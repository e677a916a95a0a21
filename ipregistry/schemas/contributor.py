from pydantic import BaseModel, ConfigDict
from typing import Optional


class ContributorCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    record_id: Optional[str] = None
    contributor_name: Optional[str] = None
    role: Optional[str] = None  # Male / Female, used only for participation analytics
