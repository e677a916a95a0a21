# API endpoints
from . import health, records, contributors, gender, ipassets, calendar

__all__ = ["health", "records", "contributors", "gender", "ipassets", "calendar"]
