"""
Pagination parameters shared by list endpoints.
"""

from typing import Annotated

from fastapi import Query

PaginationSkip = Annotated[int, Query(ge=0, description="Number of records to skip")]

# Punishment history and other per-user lists
PaginationLimit = Annotated[
    int, Query(ge=1, le=100, description="Maximum number of records to return")
]

# Ledger-wide lists (warnings, users) in the dashboard
PaginationLimitLarge = Annotated[
    int, Query(ge=1, le=500, description="Maximum number of records to return")
]
