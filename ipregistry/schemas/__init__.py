# Pydantic schemas
from ipregistry.schemas.record import (
    ContributorIn,
    RecordCreate,
    RecordUpdate,
    IpAssetCreate,
    IpAssetUpdate,
    to_asset_row,
)
from ipregistry.schemas.contributor import ContributorCreate

__all__ = [
    "ContributorIn",
    "RecordCreate",
    "RecordUpdate",
    "IpAssetCreate",
    "IpAssetUpdate",
    "to_asset_row",
    "ContributorCreate",
]
