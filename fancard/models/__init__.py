from fancard.models.base import Base, Database
from fancard.models.models import Code, ScanLog, ScanStatus

__all__ = [
    "Base",
    "Database",
    "Code",
    "ScanLog",
    "ScanStatus",
]
