from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from pydantic import Field, StringConstraints


# --- Numeric primitives ---
PositiveMoney = Annotated[Decimal, Field(gt=0, max_digits=20, decimal_places=2)]
NonNegMoney = Annotated[Decimal, Field(ge=0, max_digits=20, decimal_places=2)]
Weight = Annotated[float, Field(ge=0, le=100)]

# --- Strings ---
CurrencyCode = Annotated[str, StringConstraints(pattern=r"^[A-Z]{3}$")]
NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
