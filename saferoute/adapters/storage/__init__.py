from .sqlite_hazards import SQLiteHazardStore
from .sqlite_votes import SQLiteVoteLedger

__all__ = ["SQLiteHazardStore", "SQLiteVoteLedger"]
