from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, List, Any
from datetime import date


class ContributorIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    contributor_name: Optional[str] = None
    role: Optional[str] = None  # Male / Female


class RecordCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    ip_title: Optional[str] = None
    category: Optional[str] = None
    owner_inventor_summary: Optional[str] = None
    campus: Optional[str] = None
    status: Optional[str] = None
    date_registered: Optional[date] = None
    ipophl_id: Optional[str] = None
    gdrive_link: Optional[str] = None
    contributors: List[ContributorIn] = Field(default_factory=list)

    def record_fields(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"contributors"})


class RecordUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    ip_title: Optional[str] = None
    category: Optional[str] = None
    owner_inventor_summary: Optional[str] = None
    campus: Optional[str] = None
    status: Optional[str] = None
    date_registered: Optional[date] = None
    ipophl_id: Optional[str] = None
    gdrive_link: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        """Only the fields the client actually sent"""
        return self.model_dump(exclude_unset=True)


# ============================================
# Dashboard compatibility payloads
# ============================================

class IpAssetCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = None
    ip_type: Optional[str] = None
    inventors: Optional[str] = None
    remarks: Optional[str] = None
    campus: Optional[str] = None
    location: Optional[str] = None  # legacy alias of campus
    registration_date: Optional[date] = None
    shil_id_number: Optional[str] = None
    gdrive_link: Optional[str] = None

    def record_fields(self) -> Dict[str, Any]:
        return {
            "ip_title": self.title,
            "category": self.ip_type,
            "owner_inventor_summary": self.inventors,
            "status": self.remarks,
            "campus": self.campus if self.campus is not None else self.location,
            "date_registered": self.registration_date,
            "ipophl_id": self.shil_id_number,
            "gdrive_link": self.gdrive_link,
        }


class IpAssetUpdate(IpAssetCreate):

    def changes(self) -> Dict[str, Any]:
        sent = self.model_fields_set
        mapping = {
            "title": "ip_title",
            "ip_type": "category",
            "inventors": "owner_inventor_summary",
            "remarks": "status",
            "registration_date": "date_registered",
            "shil_id_number": "ipophl_id",
            "gdrive_link": "gdrive_link",
        }
        changes = {logical: getattr(self, name) for name, logical in mapping.items() if name in sent}
        if "campus" in sent:
            changes["campus"] = self.campus
        elif "location" in sent:
            changes["campus"] = self.location
        return changes


def to_asset_row(row: Dict[str, Any], sex: Optional[str] = None) -> Dict[str, Any]:
    """Record row -> field names the dashboard expects"""
    ip_id = row.get("ipophl_id")
    asset = {
        "id": row.get("record_id"),
        "title": row.get("ip_title"),
        "ip_type": row.get("category"),
        "remarks": row.get("status"),
        "inventors": row.get("owner_inventor_summary"),
        "registration_date": row.get("date_registered"),
        "location": row.get("campus"),
        "shil_id_number": ip_id,
        "ipophil_id_number": ip_id,
        "ipophl_id": ip_id,
        "gdrive_link": row.get("gdrive_link"),
        "next_due_date": None,
        "renewal_date": None,
        "link": None,
    }
    if sex is not None:
        asset["sex"] = sex
    return asset
