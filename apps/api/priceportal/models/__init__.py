"""
Models package.

Importing the modules registers every table on Base.metadata
(Alembic and create_all rely on this side effect).
"""

from __future__ import annotations

from priceportal.models import user  # noqa: F401
from priceportal.models import branch  # noqa: F401
from priceportal.models import price_group  # noqa: F401
from priceportal.models import access_request  # noqa: F401
from priceportal.models import announcement  # noqa: F401
from priceportal.models import user_log  # noqa: F401
