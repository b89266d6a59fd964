"""
things/models.py -- Domain dataclass for the Thing entity.

Pure data container. Persistence lives in things/store.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Thing:
    """A named record.

    id is None before the record is written to the database. Once the store
    assigns it, it does not change.
    """

    name: Optional[str] = None
    id: Optional[int] = None
